"""
Application-level exceptions.

- ScannerError: base class for everything the scan pipeline raises.
- ConfigurationError: a required setting (e.g. the Etherscan API key) is missing.
- EtherscanAPIError: the indexer answered with an error or a malformed body.
"""


class ScannerError(Exception):
    """Base error for the purchase scanner"""


class ConfigurationError(ScannerError):
    """Required configuration is absent or invalid"""


class EtherscanAPIError(ScannerError):
    """Non-success or malformed response from the Etherscan API"""
