import socket
import struct

import stunbind as stun
from stunbind.agent import attribute, Attribute, xor_address
from stunbind.errors import MalformedAttribute, UnsupportedAddressFamily


@attribute
class MappedAddress(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.1
    """
    type = stun.ATTR_MAPPED_ADDRESS


@attribute
class Username(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.3
    """
    type = stun.ATTR_USERNAME

    @classmethod
    def encode(cls, msg, username):
        return cls(username.encode('utf8'))

    def __repr__(self):
        return "USERNAME({!r})".format(bytes.decode(self, 'utf8', 'replace'))


@attribute
class MessageIntegrity(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.4
    """
    type = stun.ATTR_MESSAGE_INTEGRITY

    def __repr__(self):
        return "MESSAGE-INTEGRITY({})".format(self.hex())


@attribute
class ErrorCode(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.6
    """
    type = stun.ATTR_ERROR_CODE


@attribute
class UnknownAttributes(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.9
    """
    type = stun.ATTR_UNKNOWN_ATTRIBUTES


@attribute
class Realm(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.7
    """
    type = stun.ATTR_REALM

    @classmethod
    def encode(cls, msg, realm):
        return cls(realm.encode('utf8'))

    def __repr__(self):
        return "REALM({!r})".format(bytes.decode(self, 'utf8', 'replace'))


@attribute
class Nonce(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.8
    """
    type = stun.ATTR_NONCE

    def __repr__(self):
        return "NONCE({!r})".format(bytes(self))


@attribute
class XorMappedAddress(Attribute):
    """The reflexive transport address, obfuscated with
    :func:`stunbind.agent.xor_address`
    :see: http://tools.ietf.org/html/rfc5389#section-15.2
    """
    type = stun.ATTR_XOR_MAPPED_ADDRESS
    struct = struct.Struct('>xBH')

    # Convert from STUN FAMILY to AF_INET
    ftoaf = {stun.FAMILY_IPv4: socket.AF_INET,
             stun.FAMILY_IPv6: socket.AF_INET6}.get
    _address_size = {stun.FAMILY_IPv4: 4,
                     stun.FAMILY_IPv6: 16}

    def __init__(self, data, family, port, address):
        self.family = family
        self.port = port
        self.address = address

    @classmethod
    def decode(cls, value, transaction_id):
        if len(value) < cls.struct.size:
            raise MalformedAttribute(
                "XOR-MAPPED-ADDRESS too short ({} bytes)".format(len(value)),
                cls.type)
        family, xport = cls.struct.unpack_from(value)
        size = cls._address_size.get(family)
        if size is None:
            raise UnsupportedAddressFamily(family, cls.type)
        if len(value) != cls.struct.size + size:
            raise MalformedAttribute(
                "XOR-MAPPED-ADDRESS of family {:#04x} is {} bytes, expected {}"
                .format(family, len(value), cls.struct.size + size), cls.type)
        port, packed_ip = xor_address(xport, value[cls.struct.size:],
                                      transaction_id)
        address = socket.inet_ntop(cls.ftoaf(family), packed_ip)
        return cls(value, family, port, address)

    @classmethod
    def encode(cls, msg, family, port, address):
        return cls.pack(family, port, address, msg.transaction_id)

    @classmethod
    def pack(cls, family, port, address, transaction_id):
        """Build the attribute from a plain address, port pair
        """
        af = cls.ftoaf(family)
        if af is None:
            raise UnsupportedAddressFamily(family, cls.type)
        packed_ip = socket.inet_pton(af, address)
        xport, xaddress = xor_address(port, packed_ip, transaction_id)
        data = cls.struct.pack(family, xport) + xaddress
        return cls(data, family, port, address)

    def __repr__(self):
        return "{}(family={:#04x}, port={}, address={!r})".format(
            type(self).__name__, self.family, self.port, self.address)

    def __str__(self):
        if self.family == stun.FAMILY_IPv6:
            return "[{}]:{}".format(self.address, self.port)
        return "{}:{}".format(self.address, self.port)
