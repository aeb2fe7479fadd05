"""
Exceptions for sup
Everything raised on purpose derives from SupError so the CLI has one place to catch
"""


class SupError(Exception):
    # general container for errors
    pass


class CryptError(SupError):
    # raised when sealing or opening a config container fails
    pass


class RandomnessUnavailable(CryptError):
    # raised when the OS random source cannot supply a salt or IV
    pass


class MalformedContainer(CryptError):
    # raised when container bytes cannot be parsed
    pass


class ContainerTooShort(MalformedContainer):
    # raised before parsing when the input cannot possibly hold a container
    pass


class AuthenticationFailed(CryptError):
    # raised on a MAC mismatch: wrong passphrase or tampered data, never says which
    pass


class StructuralCorruption(CryptError):
    # raised when authenticated ciphertext is not block aligned or has bad padding
    pass


class ConfigError(SupError):
    # raised if the config file is missing or is not a JSON object
    pass


class KeystoreError(SupError):
    # raised when the OS keyring backend refuses to store, read or delete the key
    pass
