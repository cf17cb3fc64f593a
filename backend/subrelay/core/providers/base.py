"""Translation provider contract.

Any backend implementing this interface is interchangeable with the
batch scheduler.
"""

from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Line(BaseModel):
    """Single subtitle line exchanged with a provider.

    Serialized with minified keys (``{"i": 3, "t": "..."}``) to keep
    request payloads small.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., alias="i", description="Unit id")
    text: str = Field(..., alias="t", description="Text content")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class TranslationProvider(ABC):
    """Abstract base class for translation backends."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_batch(self, lines: List[Line], system_prompt: str) -> List[Line]:
        """Translate a batch of lines.

        Args:
            lines: Lines to translate
            system_prompt: Fully rendered system prompt

        Returns:
            Translated lines, one per input line, carrying the input ids

        Raises:
            ProviderError: On transport, rate-limit, auth or shape failures
        """
        pass

    @abstractmethod
    async def validate_key(self) -> bool:
        """Check whether the configured key/endpoint is usable."""
        pass

    @abstractmethod
    async def list_models(self) -> List[str]:
        """List models available from this provider.

        Raises:
            ProviderError: If the provider cannot be queried
        """
        pass
