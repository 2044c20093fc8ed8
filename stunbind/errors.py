class StunError(Exception):
    """Base class for everything the STUN codec and client raise
    """


class MalformedHeader(StunError):
    """The 20 byte message header is short, or carries an invalid message
    type or magic cookie
    """


class TruncatedAttribute(StunError):
    """An attribute claims more bytes than the message holds

    :ivar header: the already decoded header, if any
    :ivar attributes: attributes decoded before the truncation
    """
    def __init__(self, msg, header=None, attributes=()):
        StunError.__init__(self, msg)
        self.header = header
        self.attributes = list(attributes)


class MalformedAttribute(StunError):
    """A recognized attribute whose value can not be decoded
    """
    def __init__(self, msg, attr_type=None):
        StunError.__init__(self, msg)
        self.attr_type = attr_type


class UnsupportedAddressFamily(MalformedAttribute):
    def __init__(self, family, attr_type=None):
        MalformedAttribute.__init__(
            self, "Unsupported address family: {:#04x}".format(family), attr_type)
        self.family = family


class UnknownAttributeType(StunError):
    """Diagnostic for an attribute type code that is not registered.

    The decoder never raises this; it is collected in
    :attr:`stunbind.agent.Message.diagnostics` and the attribute is skipped.
    """
    def __init__(self, attr_type, length):
        StunError.__init__(self, "Unknown attribute type: {:#06x} (length={})"
                           .format(attr_type, length))
        self.attr_type = attr_type
        self.length = length

    @property
    def required(self):
        """Whether the type lies in the comprehension-required range
        """
        return self.attr_type < 0x8000


class TransportError(StunError):
    pass


class TransactionError(StunError):
    pass
