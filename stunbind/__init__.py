"""Client side of the RFC 5389 Session Traversal Utilities for NAT (STUN)
Binding transaction.
:see: http://tools.ietf.org/html/rfc5389
"""

__version__ = '0.1.0'

# STUN Methods Registry
METHOD_BINDING =        0x001

CLASS_REQUEST =             0x00
CLASS_INDICATION =          0x01
CLASS_RESPONSE_SUCCESS =    0x10
CLASS_RESPONSE_ERROR =      0x11


# STUN Message Types
MSG_STUN = 0b00
_MSG_TYPE = lambda METHOD, CLASS: MSG_STUN << 14 | METHOD & 0x3eef | CLASS << 4

MAGIC_COOKIE = 0x2112A442

# STUN Attribute Registry
# Comprehension-required range (0x0000-0x7FFF):
ATTR_MAPPED_ADDRESS =      0x0001
ATTR_USERNAME =            0x0006
ATTR_MESSAGE_INTEGRITY =   0x0008
ATTR_ERROR_CODE =          0x0009
ATTR_UNKNOWN_ATTRIBUTES =  0x000A
ATTR_REALM =               0x0014
ATTR_NONCE =               0x0015
ATTR_XOR_MAPPED_ADDRESS =  0x0020

# Address families of the (XOR-)MAPPED-ADDRESS attributes
FAMILY_IPv4 = 0x01
FAMILY_IPv6 = 0x02

STUN_PORT = 3478
# Replies larger than this are truncated by the transport
RECV_BUFSIZE = 512

STUN_SERVERS = [
    "stun.l.google.com:19302",
    "stun1.l.google.com:19302",
    "stun2.l.google.com:19302",
    "stun3.l.google.com:19302",
    "stun4.l.google.com:19302",
    ]
