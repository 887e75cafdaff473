from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ratewatch.services.http_client import is_form_encoded

DEFAULT_ENDPOINTS_FILE = Path(__file__).resolve().parent.parent / "data" / "endpoints.json"


class EndpointConfig(BaseModel):
    name: str = Field(..., min_length=1)
    url: str
    method: Literal["GET", "POST"] = "GET"
    headers: Optional[Dict[str, str]] = None
    payload: Optional[Dict[str, Any]] = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must be http(s)")
        return v

    @property
    def label(self) -> str:
        return f"{self.name} ({self.url})"

    @property
    def is_form_encoded(self) -> bool:
        return is_form_encoded(self.headers)


def load_endpoints(path: Optional[Path] = None) -> List[EndpointConfig]:
    """Read the endpoint list from ``path`` (packaged default when None)."""
    source = Path(path) if path is not None else DEFAULT_ENDPOINTS_FILE
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ValueError(f"cannot read endpoint list {source}: {e}") from e
    if not isinstance(raw, list):
        raise ValueError(f"endpoint list {source} must be a JSON array")
    try:
        return [EndpointConfig(**item) for item in raw]
    except (TypeError, ValidationError) as e:
        raise ValueError(f"invalid endpoint in {source}: {e}") from e
