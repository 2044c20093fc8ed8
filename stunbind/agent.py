import binascii
import logging
import os
import struct

import stunbind as stun
from stunbind.errors import (MalformedHeader, TruncatedAttribute,
                             MalformedAttribute, UnknownAttributeType)


logger = logging.getLogger(__name__)


def xor_address(port, packed_ip, transaction_id):
    """Obfuscate (or recover) a port and packed IP address.

    The port is xored with the 16 most significant bits of the magic cookie,
    the address with the concatenation of the magic cookie and the
    transaction id. Applying it twice gives back the input.
    :see: http://tools.ietf.org/html/rfc5389#section-15.2
    """
    key = struct.pack('>L12s', stun.MAGIC_COOKIE, bytes(transaction_id))
    xport = port ^ stun.MAGIC_COOKIE >> 16
    xaddress = bytes(a ^ b for a, b in zip(packed_ip, key))
    return xport, xaddress


class Header(object):
    """STUN message header
    :see: http://tools.ietf.org/html/rfc5389#section-6
    """

    _struct = struct.Struct('>2HL12s')
    size = _struct.size

    # Class bits of the message type (C1 at bit 8, C0 at bit 4)
    _CLASS_MASK = 0x0110
    _CLASSES = {
        0x0000: stun.CLASS_REQUEST,
        0x0010: stun.CLASS_INDICATION,
        0x0100: stun.CLASS_RESPONSE_SUCCESS,
        0x0110: stun.CLASS_RESPONSE_ERROR,
        }
    _METHOD_MASK = 0x3eef
    _METHODS = (stun.METHOD_BINDING,)

    def __init__(self, msg_class, msg_method, transaction_id, length=0):
        if len(transaction_id) != 12:
            raise ValueError("Transaction id must be 12 bytes, got {}"
                             .format(len(transaction_id)))
        self.msg_class = msg_class
        self.msg_method = msg_method
        self.transaction_id = bytes(transaction_id)
        self.length = length

    @property
    def msg_type(self):
        return stun._MSG_TYPE(self.msg_method, self.msg_class)

    @classmethod
    def decode(cls, data):
        """
        :see: http://tools.ietf.org/html/rfc5389#section-7.3
        """
        if len(data) < cls.size:
            raise MalformedHeader("STUN header is {} bytes, got {}"
                                  .format(cls.size, len(data)))
        msg_type, length, magic_cookie, transaction_id = \
            cls._struct.unpack_from(data)
        if msg_type >> 14 != stun.MSG_STUN:
            raise MalformedHeader("STUN message MUST start with 0b00")
        if magic_cookie != stun.MAGIC_COOKIE:
            raise MalformedHeader("Incorrect magic cookie ({:#010x})"
                                  .format(magic_cookie))
        msg_class = cls._CLASSES.get(msg_type & cls._CLASS_MASK)
        if msg_class is None:
            raise MalformedHeader("Invalid message class in type {:#06x}"
                                  .format(msg_type))
        msg_method = msg_type & cls._METHOD_MASK
        if msg_method not in cls._METHODS:
            raise MalformedHeader("Unsupported method {:#05x}".format(msg_method))
        return cls(msg_class, msg_method, transaction_id, length)

    def encode(self, length):
        """
        :param length: byte length of the attributes following the header
        """
        return self._struct.pack(self.msg_type, length, stun.MAGIC_COOKIE,
                                 self.transaction_id)

    def __eq__(self, other):
        if not isinstance(other, Header):
            return NotImplemented
        return (self.msg_class, self.msg_method, self.transaction_id) == \
            (other.msg_class, other.msg_method, other.transaction_id)

    __hash__ = None

    def __repr__(self):
        return "{}(method={:#05x}, class={:#04x}, transaction_id={})".format(
            type(self).__name__, self.msg_method, self.msg_class,
            self.transaction_id.hex())


class Message(object):
    """STUN message structure
    :see: http://tools.ietf.org/html/rfc5389#section-6
    """

    _ATTR_TYPE_CLS = {}

    # Padding content is ignored by the receiver
    _padding = b'\x00'.__mul__

    def __init__(self, header, attributes=(), diagnostics=()):
        self.header = header
        self.attributes = list(attributes)
        self.diagnostics = list(diagnostics)

    @property
    def msg_class(self):
        return self.header.msg_class

    @property
    def msg_method(self):
        return self.header.msg_method

    @property
    def transaction_id(self):
        return self.header.transaction_id

    @classmethod
    def request(cls, transaction_id=None):
        """Binding request with a fresh (or the given) transaction id
        :see: http://tools.ietf.org/html/rfc5389#section-7.1
        """
        transaction_id = transaction_id or os.urandom(12)
        return cls(Header(stun.CLASS_REQUEST, stun.METHOD_BINDING, transaction_id))

    def create_response(self, msg_class):
        return type(self)(Header(msg_class, self.msg_method, self.transaction_id))

    def add_attr(self, attr_cls, *args, **kwargs):
        attr = attr_cls.encode(self, *args, **kwargs)
        self.attributes.append(attr)
        return attr

    def get_attr(self, *attr_types):
        for attr in self.attributes:
            if attr.type in attr_types:
                return attr

    @property
    def mapped_address(self):
        return self.get_attr(stun.ATTR_XOR_MAPPED_ADDRESS)

    def _encode_attributes(self):
        data = bytearray()
        for attr in self.attributes:
            data.extend(Attribute.struct.pack(attr.type, len(attr)))
            data.extend(attr)
            data.extend(self._padding(attr.padding))
        return bytes(data)

    def encode(self):
        attributes = self._encode_attributes()
        return self.header.encode(len(attributes)) + attributes

    __bytes__ = encode

    @property
    def length(self):
        return len(self._encode_attributes())

    @classmethod
    def decode(cls, data, strict=False):
        """
        :param strict: raise, instead of skip, attributes that fail to decode
        :see: http://tools.ietf.org/html/rfc5389#section-7.3
        """
        data = bytes(data)
        header = Header.decode(data)
        if header.length % 4:
            raise MalformedHeader("Message not aligned to 4 byte boundary")
        end = Header.size + header.length
        if end > len(data):
            raise TruncatedAttribute(
                "Message length {} exceeds the {} attribute bytes received"
                .format(header.length, len(data) - Header.size), header)
        try:
            attributes, diagnostics = cls.decode_attributes(
                data[Header.size:end], header.transaction_id, strict)
        except TruncatedAttribute as e:
            e.header = header
            logger.debug("Truncated message: %s", binascii.hexlify(data))
            raise
        return cls(header, attributes, diagnostics)

    @classmethod
    def decode_attributes(cls, data, transaction_id, strict=False):
        """Decode the attribute section of a message

        Unknown attribute types are skipped, and so are attributes whose
        value can not be decoded unless ``strict`` is set. Both are reported
        in the returned diagnostics.
        :returns: (attributes, diagnostics)
        :raises TruncatedAttribute: if an attribute runs past ``data``
        """
        data = bytes(data)
        attributes = []
        diagnostics = []
        offset = 0
        while offset < len(data):
            if len(data) - offset < Attribute.struct.size:
                raise TruncatedAttribute(
                    "{} trailing bytes can not hold an attribute"
                    .format(len(data) - offset), attributes=attributes)
            attr_type, length = Attribute.struct.unpack_from(data, offset)
            offset += Attribute.struct.size
            if offset + length > len(data):
                raise TruncatedAttribute(
                    "{} claims {} bytes, {} left".format(
                        cls.attr_name(attr_type), length, len(data) - offset),
                    attributes=attributes)
            value = data[offset:offset + length]
            # Skip the padding, it may be missing after the last attribute
            offset += length + (4 - length % 4) % 4

            attr_cls = cls._ATTR_TYPE_CLS.get(attr_type)
            if not attr_cls:
                diagnostic = UnknownAttributeType(attr_type, length)
                logger.warning("Skipping attribute: %s", diagnostic)
                diagnostics.append(diagnostic)
                continue
            try:
                attr = attr_cls.decode(value, transaction_id)
            except MalformedAttribute as e:
                if strict:
                    raise
                logger.warning("Skipping %s: %s", attr_cls.__name__, e)
                diagnostics.append(e)
                continue
            attributes.append(attr)
        return attributes, diagnostics

    @classmethod
    def add_attr_cls(cls, attr_cls):
        """Decorator to add a Stun Attribute as an recognized attribute type
        """
        assert not cls._ATTR_TYPE_CLS.get(attr_cls.type, False), \
            "Duplicate definition for {:#06x}".format(attr_cls.type)
        cls._ATTR_TYPE_CLS[attr_cls.type] = attr_cls
        return attr_cls

    @classmethod
    def attr_name(cls, attr_type):
        """Get the readable name of an attribute type, if known
        """
        attr_cls = cls._ATTR_TYPE_CLS.get(attr_type)
        return attr_cls.__name__ if attr_cls else "{:#06x}".format(attr_type)

    def __repr__(self):
        return ("{}(method={:#05x}, class={:#04x}, length={}, "
                "transaction_id={}, attributes={})".format(
                    type(self).__name__, self.msg_method, self.msg_class,
                    self.length, self.transaction_id.hex(), self.attributes))

    def format(self):
        string = '\n'.join([
            "{0.__class__.__name__}",
            "    method:         {0.msg_method:#05x}",
            "    class:          {0.msg_class:#04x}",
            "    length:         {0.length}",
            "    magic-cookie:   {1:#010x}",
            "    transaction-id: {2}",
            "    attributes:", ""
            ]).format(self, stun.MAGIC_COOKIE, self.transaction_id.hex())
        string += '\n'.join(["    \t" + repr(attr) for attr in self.attributes])
        if self.diagnostics:
            string += '\n    diagnostics:\n'
            string += '\n'.join(["    \t" + str(d) for d in self.diagnostics])
        return string


class Attribute(bytes):
    """STUN message attribute structure
    :see: http://tools.ietf.org/html/rfc5389#section-15
    """
    struct = struct.Struct('>2H')
    type = None

    def __new__(cls, data, *args, **kwargs):
        return bytes.__new__(cls, data)

    @classmethod
    def decode(cls, value, transaction_id):
        return cls(value)

    @classmethod
    def encode(cls, msg, data):
        return cls(data)

    @property
    def padding(self):
        """Calculate number of padding bytes required to align to 4 byte boundary
        """
        return (4 - (len(self) % 4)) % 4

    def __repr__(self):
        return "{}(length={}, value={})".format(
            type(self).__name__, len(self), self.hex())


# Decorator shortcut for adding known attribute classes
attribute = Message.add_attr_cls

# Register the known attribute types
from stunbind import attributes  # noqa: E402,F401
