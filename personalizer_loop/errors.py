
from typing import Optional

class PersonalizerError(Exception):
    """Raised when the ranking service rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.error_code:
            parts.append(f"code={self.error_code}")
        return " ".join(parts)

class RankingContractError(PersonalizerError):
    """Response did not match the rank contract (missing fields, excluded action chosen)."""

class ConfigurationError(Exception):
    pass
