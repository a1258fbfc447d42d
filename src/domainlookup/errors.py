"""
Error taxonomy for domain lookups.

Every failure raised by the RDAP and WHOIS clients derives from
DomainLookupError, so the checker can recover from all of them in one place.

- InvalidDomainError: input has fewer than two labels
- EndpointNotFoundError / WhoisServerNotFoundError: no server known for the TLD
- BootstrapFetchError / BootstrapParseError: the RDAP bootstrap could not be loaded
- AllEndpointsFailedError: every RDAP endpoint for the TLD soft-failed
- WhoisConnectError / WhoisIOError: transport failures, timeouts included
- UnclassifiedResponseError: WHOIS text matched no known marker
"""


class DomainLookupError(Exception):
    """Base class for lookup failures."""


class InvalidDomainError(DomainLookupError, ValueError):
    """Domain name is malformed."""


class BootstrapError(DomainLookupError):
    """RDAP bootstrap document could not be loaded."""


class BootstrapFetchError(BootstrapError):
    """Bootstrap document could not be downloaded."""


class BootstrapParseError(BootstrapError):
    """Bootstrap document is not valid JSON or has the wrong shape."""


class EndpointNotFoundError(DomainLookupError, LookupError):
    """No RDAP endpoint is registered for the TLD."""


class AllEndpointsFailedError(DomainLookupError):
    """No RDAP endpoint gave a decisive answer."""


class WhoisServerNotFoundError(DomainLookupError, LookupError):
    """No WHOIS server is known for the TLD."""


class WhoisConnectError(DomainLookupError):
    """Connection to the WHOIS server failed or timed out."""


class WhoisIOError(DomainLookupError):
    """Sending the query or reading the WHOIS response failed."""


class UnclassifiedResponseError(DomainLookupError):
    """WHOIS response matched neither the registered nor the available markers."""
