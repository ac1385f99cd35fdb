"""skynet-utils public surface."""

from skynet_utils.client import PortalClient
from skynet_utils.crypto.keys import (
    DerivedKeys,
    SigningKeyPair,
    derive_entropy,
    derive_keypair,
    derive_keys,
    derive_keys_from_phrase,
    derive_lookup_key,
)
from skynet_utils.dictionary import DICTIONARY_V1, DICTIONARY_VERSION
from skynet_utils.errors import (
    AddressMismatchError,
    ChecksumMismatchError,
    FileTooLargeError,
    IntegrityError,
    InternalFault,
    InvalidSeedError,
    InvalidVersionWordError,
    MalformedPhraseError,
    PhraseError,
    PortalRequestError,
    PortalResponseError,
    PortalUnavailableError,
    SkynetSDKError,
    StaleRevisionError,
    UnknownWordError,
    UntrustedResponseError,
)
from skynet_utils.mnemonic import (
    MnemonicCodec,
    find_shared_prefixes,
    generate_seed,
    match_word_prefix,
    phrase_to_seed,
    seed_to_phrase,
)
from skynet_utils.registry import RegistryClient, RegistryEntry, sign_entry, verify_entry
from skynet_utils.schemas import SkyfileMetadata, SkylinkMetadata
from skynet_utils.skyfile import compute_address
from skynet_utils.skylink import Skylink
from skynet_utils.transport import RequestsTransport, Transport, TransportResponse
from skynet_utils.upload import SecureUploader, file_skylink

__all__ = [
    "SkynetSDKError",
    "PhraseError",
    "MalformedPhraseError",
    "UnknownWordError",
    "InvalidVersionWordError",
    "ChecksumMismatchError",
    "InvalidSeedError",
    "IntegrityError",
    "UntrustedResponseError",
    "StaleRevisionError",
    "AddressMismatchError",
    "FileTooLargeError",
    "InternalFault",
    "PortalUnavailableError",
    "PortalRequestError",
    "PortalResponseError",
    "DICTIONARY_V1",
    "DICTIONARY_VERSION",
    "MnemonicCodec",
    "generate_seed",
    "seed_to_phrase",
    "phrase_to_seed",
    "match_word_prefix",
    "find_shared_prefixes",
    "SigningKeyPair",
    "DerivedKeys",
    "derive_entropy",
    "derive_keypair",
    "derive_lookup_key",
    "derive_keys",
    "derive_keys_from_phrase",
    "Transport",
    "TransportResponse",
    "RequestsTransport",
    "RegistryClient",
    "RegistryEntry",
    "sign_entry",
    "verify_entry",
    "Skylink",
    "SkyfileMetadata",
    "SkylinkMetadata",
    "compute_address",
    "SecureUploader",
    "file_skylink",
    "PortalClient",
]
