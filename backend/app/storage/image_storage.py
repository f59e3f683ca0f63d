from typing import Iterable, List
from app.core.config import settings


class ImageStorage:
    """
    Turns stored image references into URLs clients can fetch.

    Listings store either bare object keys ("products/abc.webp") or absolute
    URLs. Keys are joined onto the public base URL; URLs pass through.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def resolve(self, reference: str) -> str:
        if reference.startswith(("http://", "https://")):
            return reference
        return f"{self.base_url}/{reference.lstrip('/')}"

    def resolve_all(self, references: Iterable[str]) -> List[str]:
        return [self.resolve(reference) for reference in references or [] if reference]


storage = ImageStorage(settings.IMAGE_BASE_URL)
