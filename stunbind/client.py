import binascii
import logging
import socket

from twisted.internet import defer, error
from twisted.internet.protocol import DatagramProtocol

import stunbind as stun
from stunbind.agent import Message
from stunbind.errors import TransportError, TransactionError


logger = logging.getLogger(__name__)


def parse_address(text, default_port=stun.STUN_PORT):
    """Split ``host[:port]`` (``[ipv6]:port`` for IPv6 literals)
    """
    text = text.strip()
    if text.startswith('['):
        host, sep, rest = text[1:].partition(']')
        if not sep or (rest and not rest.startswith(':')):
            raise TransportError("Invalid server address {!r}".format(text))
        port = rest[1:]
    elif text.count(':') > 1:
        host, port = text, ''
    else:
        host, _, port = text.partition(':')
    if not host:
        raise TransportError("Invalid empty server address")
    if not port:
        return host, default_port
    try:
        port = int(port)
    except ValueError:
        raise TransportError("Invalid server port {!r}".format(port))
    if not 0 < port <= 65535:
        raise TransportError("Server port must be 0 < {} <= 65535".format(port))
    return host, port


class StunUdpClient(DatagramProtocol):
    """Single shot STUN exchange over UDP.

    Every :meth:`send` writes one datagram to the server and fires with the
    first datagram that comes back. There is no retransmission and no timeout.
    """
    bufsize = stun.RECV_BUFSIZE

    def __init__(self, reactor, server, port=0, ip_version=4):
        """
        :param server: ``host[:port]`` of the STUN server
        :param port: local UDP port to bind to, 0 for any
        :param ip_version: 4 or 6
        """
        if ip_version == 4:
            self.family, self.interface = socket.AF_INET, '0.0.0.0'
        elif ip_version == 6:
            self.family, self.interface = socket.AF_INET6, '::'
        else:
            raise TransportError("Unknown IP version: {}".format(ip_version))
        self.reactor = reactor
        self.port = port
        self.server = self.resolve(server, self.family)
        self._listening_port = None
        self._pending = None

    @staticmethod
    def resolve(server, family):
        host, port = parse_address(server)
        try:
            addrinfo = socket.getaddrinfo(host, port, family, socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError) as e:
            raise TransportError("Can not resolve {}: {}".format(host, e))
        sockaddr = addrinfo[0][4]
        return sockaddr[0], sockaddr[1]

    def start(self):
        try:
            self._listening_port = self.reactor.listenUDP(self.port, self,
                                                          self.interface)
        except error.CannotListenError as e:
            raise TransportError(str(e))
        return self._listening_port.getHost().port

    def stop(self):
        if self._listening_port is not None:
            port, self._listening_port = self._listening_port, None
            return port.stopListening()

    def send(self, data):
        """
        :returns: Deferred firing with the reply datagram
        """
        if self.transport is None:
            raise TransportError("{} is not started".format(self))
        if self._pending is not None:
            raise TransactionError("An exchange is already in progress")
        d = self._pending = defer.Deferred()
        logger.info("%s Sending %d bytes to %s:%d", self, len(data), *self.server)
        try:
            self.transport.write(bytes(data), self.server)
        except (socket.error, ValueError) as e:
            self._pending = None
            d.errback(TransportError(str(e)))
        return d

    def datagramReceived(self, datagram, addr):
        d, self._pending = self._pending, None
        if d is None:
            logger.warning("%s Unexpected datagram from %s:%d", self, *addr[:2])
            logger.debug(binascii.hexlify(datagram))
            return
        if len(datagram) > self.bufsize:
            logger.debug("%s Truncating %d byte datagram", self, len(datagram))
        d.callback(bytes(datagram[:self.bufsize]))

    def bind(self, transaction_id=None):
        """Run a Binding transaction
        :returns: Deferred firing with the decoded response :class:`Message`
        :see: http://tools.ietf.org/html/rfc5389#section-7.1
        """
        request = Message.request(transaction_id)
        logger.info("%s Binding", self)
        logger.debug(request.format())
        d = self.send(request.encode())
        d.addCallback(self._binding_response, request)
        return d

    def _binding_response(self, datagram, request):
        response = Message.decode(datagram)
        logger.info("%s Received STUN", self)
        logger.debug(response.format())
        if response.transaction_id != request.transaction_id:
            raise TransactionError(
                "Transaction id mismatch: sent {}, received {}".format(
                    request.transaction_id.hex(), response.transaction_id.hex()))
        return response

    def __str__(self):
        return "<{} {}:{}>".format(type(self).__name__, *self.server)
