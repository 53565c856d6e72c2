"""
Exceptions raised by musubi.

Only upstream dependency failures are errors. A token without dictionary
candidates or a scoring tie is a normal outcome and never raises.
"""


class MusubiError(Exception):
    """Base class for all musubi errors."""


class TokenizerError(MusubiError):
    """The external tokenizer is unavailable, failed, or returned a gapped token list."""


class DictionaryStoreError(MusubiError):
    """The dictionary store could not be queried."""
