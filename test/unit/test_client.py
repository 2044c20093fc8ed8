import io

from twisted.internet import reactor
from twisted.internet.protocol import DatagramProtocol
from twisted.trial import unittest

import stunbind as stun
from stunbind import scripts
from stunbind.agent import Header, Message
from stunbind.attributes import Realm, XorMappedAddress
from stunbind.client import StunUdpClient, parse_address
from stunbind.errors import StunError, TransactionError, TransportError


class BindingResponder(DatagramProtocol):
    """Answers every Binding request with the source address of the request
    """
    transaction_id = None
    mapped_address = True
    msg_class = stun.CLASS_RESPONSE_SUCCESS
    realm = None

    def __init__(self):
        self.requests = []

    def datagramReceived(self, datagram, addr):
        request = Message.decode(datagram)
        self.requests.append(request)
        response = request.create_response(self.msg_class)
        if self.transaction_id:
            response.header = Header(self.msg_class,
                                     stun.METHOD_BINDING, self.transaction_id)
        if self.mapped_address:
            response.add_attr(XorMappedAddress, stun.FAMILY_IPv4, addr[1], addr[0])
        if self.realm:
            response.add_attr(Realm, self.realm)
        self.transport.write(response.encode(), addr)


class Echo(DatagramProtocol):
    def __init__(self, size):
        self.size = size

    def datagramReceived(self, datagram, addr):
        self.transport.write(datagram * (self.size // len(datagram)), addr)


class ResponderMixin(object):
    def listen(self, protocol):
        port = reactor.listenUDP(0, protocol, interface='127.0.0.1')
        self.addCleanup(port.stopListening)
        return '127.0.0.1:{}'.format(port.getHost().port)

    def client(self, server):
        client = StunUdpClient(reactor, server)
        local_port = client.start()
        self.addCleanup(client.stop)
        return client, local_port


class StunUdpClientTest(ResponderMixin, unittest.TestCase):
    def test_bind(self):
        responder = BindingResponder()
        client, local_port = self.client(self.listen(responder))
        transaction_id = b'\x07' * 12
        d = client.bind(transaction_id)

        @d.addCallback
        def check(response):
            self.assertEqual(response.msg_class, stun.CLASS_RESPONSE_SUCCESS)
            self.assertEqual(response.transaction_id, transaction_id)
            self.assertEqual(response.mapped_address.address, '127.0.0.1')
            self.assertEqual(response.mapped_address.port, local_port)
            self.assertEqual(len(responder.requests), 1)
            self.assertEqual(responder.requests[0].msg_class, stun.CLASS_REQUEST)
        return d

    def test_bind_transaction_mismatch(self):
        responder = BindingResponder()
        responder.transaction_id = b'\x08' * 12
        client, _ = self.client(self.listen(responder))
        return self.assertFailure(client.bind(b'\x07' * 12), TransactionError)

    def test_send_truncates(self):
        client, _ = self.client(self.listen(Echo(600)))
        d = client.send(b'0123456789')

        @d.addCallback
        def check(datagram):
            self.assertEqual(len(datagram), stun.RECV_BUFSIZE)
            self.assertEqual(datagram[:10], b'0123456789')
        return d

    def test_send_small_reply(self):
        client, _ = self.client(self.listen(Echo(20)))
        d = client.send(b'0123456789')
        d.addCallback(self.assertEqual, b'01234567890123456789')
        return d

    def test_one_exchange_at_a_time(self):
        client, _ = self.client(self.listen(BindingResponder()))
        d = client.bind()
        self.assertRaises(TransactionError, client.send, b'ping')
        return d

    def test_bind_error_response_with_realm(self):
        responder = BindingResponder()
        responder.msg_class = stun.CLASS_RESPONSE_ERROR
        responder.mapped_address = False
        responder.realm = "example.org"
        client, _ = self.client(self.listen(responder))
        d = client.bind()

        @d.addCallback
        def check(response):
            self.assertEqual(response.msg_class, stun.CLASS_RESPONSE_ERROR)
            self.assertEqual(response.get_attr(stun.ATTR_REALM), b'example.org')
            self.assertIn("REALM('example.org')", response.format())
        return d

    def test_start_port_in_use(self):
        client, local_port = self.client('127.0.0.1:3478')
        other = StunUdpClient(reactor, '127.0.0.1:3478', port=local_port)
        self.assertRaises(TransportError, other.start)

    def test_send_before_start(self):
        client = StunUdpClient(reactor, '127.0.0.1:3478')
        self.assertRaises(TransportError, client.send, b'ping')

    def test_unknown_ip_version(self):
        self.assertRaises(TransportError, StunUdpClient, reactor,
                          '127.0.0.1', ip_version=5)

    def test_resolve(self):
        client = StunUdpClient(reactor, '127.0.0.1')
        self.assertEqual(client.server, ('127.0.0.1', stun.STUN_PORT))

    def test_bad_destination(self):
        for server in ['', ':3478', '127.0.0.1:http', '127.0.0.1:0',
                       '127.0.0.1:65536', '[::1', '[::1]x']:
            self.assertRaises(TransportError, StunUdpClient, reactor, server)


class ParseAddressTest(unittest.TestCase):
    def test_host(self):
        self.assertEqual(parse_address('stun.example.org'),
                         ('stun.example.org', 3478))

    def test_host_port(self):
        self.assertEqual(parse_address(' stun.l.google.com:19302 '),
                         ('stun.l.google.com', 19302))

    def test_ipv6(self):
        self.assertEqual(parse_address('[2001:db8::1]:5349'), ('2001:db8::1', 5349))
        self.assertEqual(parse_address('[::1]'), ('::1', 3478))
        self.assertEqual(parse_address('2001:db8::1'), ('2001:db8::1', 3478))


class ScriptTest(ResponderMixin, unittest.TestCase):
    def test_parser(self):
        args = scripts.build_parser().parse_args(['-p', '5000', '-6', 'host:1'])
        self.assertEqual((args.port, args.ip_version, args.server, args.verbose),
                         (5000, 6, 'host:1', False))
        args = scripts.build_parser().parse_args([])
        self.assertIn(args.server, stun.STUN_SERVERS)
        self.assertEqual(args.ip_version, 4)

    def test_run(self):
        server = self.listen(BindingResponder())
        args = scripts.build_parser().parse_args(['-v', server])
        out = io.StringIO()
        d = scripts.run(reactor, args, out)

        @d.addCallback
        def check(result):
            lines = out.getvalue().splitlines()
            self.assertTrue(lines[-1].startswith('127.0.0.1:'))
            self.assertIn('XorMappedAddress', out.getvalue())
        return d

    def test_run_without_address(self):
        responder = BindingResponder()
        responder.mapped_address = False
        args = scripts.build_parser().parse_args([self.listen(responder)])
        return self.assertFailure(scripts.run(reactor, args, io.StringIO()),
                                  StunError)
