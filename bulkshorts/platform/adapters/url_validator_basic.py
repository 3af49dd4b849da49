from urllib.parse import urlparse
from bulkshorts.platform.ports.url_validator import UrlValidatorPort

class SchemeUrlValidator(UrlValidatorPort):
    """Keeps absolute http(s) URLs with a host. Stand-in for the hosted AI validator."""

    def __init__(self, schemes: tuple[str, ...] = ("http", "https")):
        self.schemes = schemes

    async def validate(self, urls: list[str]) -> list[str]:
        out = []
        for u in urls:
            parsed = urlparse(u.strip())
            if parsed.scheme.lower() in self.schemes and parsed.netloc:
                out.append(u.strip())
        return out
