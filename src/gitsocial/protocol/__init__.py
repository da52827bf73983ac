"""Wire formats: addresses, action messages and list snapshots."""

from .address import AddressKind, ParsedAddress, RepositoryId
from .codec import ActionCodecError, ActionHeader, ActionMessage, ActionReference, decode, encode
from .lists import ListState, decode_list_state, encode_list_state

__all__ = [
    "ActionCodecError",
    "ActionHeader",
    "ActionMessage",
    "ActionReference",
    "AddressKind",
    "ListState",
    "ParsedAddress",
    "RepositoryId",
    "decode",
    "decode_list_state",
    "encode",
    "encode_list_state",
]
