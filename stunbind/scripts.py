"""Console entry point: discover the public address through a STUN server
"""
import logging
import random
import sys
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser

from twisted.internet import defer, task

import stunbind as stun
from stunbind.client import StunUdpClient
from stunbind.errors import StunError


def build_parser():
    parser = ArgumentParser(
        prog='stunbind',
        description="Discover the public transport address using a STUN "
                    "Binding request",
        epilog="The default STUN port is {}.".format(stun.STUN_PORT),
        formatter_class=ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("-p", "--port", default=0, type=int,
                        help="local UDP port, 0 picks any free port")
    parser.add_argument("-6", "--ipv6", dest="ip_version", action="store_const",
                        const=6, default=4, help="use IPv6 instead of IPv4")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="print the decoded response and debug logging")
    parser.add_argument("-V", "--version", action="version",
                        version="%(prog)s {}".format(stun.__version__))
    parser.add_argument("server", nargs="?",
                        default=random.choice(stun.STUN_SERVERS),
                        help="STUN server[:port]")
    return parser


def run(reactor, args, out=sys.stdout):
    client = StunUdpClient(reactor, args.server, args.port, args.ip_version)
    client.start()
    d = client.bind()

    @d.addCallback
    def binding_succeeded(response):
        if args.verbose:
            out.write(response.format() + "\n")
        address = response.mapped_address
        if address is None:
            raise StunError("No XOR-MAPPED-ADDRESS in response")
        out.write("{}\n".format(address))

    @d.addBoth
    def stop(result):
        return defer.maybeDeferred(client.stop).addBoth(lambda _: result)

    return d


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not 0 <= args.port <= 65535:
        parser.error("local port must be 0 <= {} <= 65535".format(args.port))
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    def react(reactor):
        d = defer.maybeDeferred(run, reactor, args)

        @d.addErrback
        def binding_failed(failure):
            failure.trap(StunError)
            sys.stderr.write("stunbind: {}\n".format(failure.value))
            raise SystemExit(1)

        return d

    task.react(react)


if __name__ == '__main__':
    main()
