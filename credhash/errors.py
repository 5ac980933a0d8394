# Copyright (c) 2026 Signer — MIT License

"""Exceptions raised by the credential hashing package."""


class CredhashError(Exception):
    pass


class InvalidParameter(CredhashError, ValueError):
    """A derivation or hash parameter is outside its allowed range."""


class MalformedCredential(CredhashError, ValueError):
    """An encoded credential string could not be parsed.

    Never escapes ``verify_password``: it is folded into a ``False``
    result there, the same as a digest mismatch.
    """
