"""Length-aware page of query results."""
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Page(BaseModel):
    """One page of entities plus the metadata needed to navigate the rest."""

    items: List[Any] = Field(default_factory=list)
    total: int = Field(ge=0)
    per_page: int = Field(gt=0)
    current_page: int = Field(ge=1)
    page_name: str = "page"
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def from_item(self) -> Optional[int]:
        """1-based position of the first item on this page, None when empty."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def to_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.from_item + len(self.items) - 1

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @property
    def on_first_page(self) -> bool:
        return self.current_page <= 1

    def meta(self) -> Dict[str, Any]:
        return {
            "current_page": self.current_page,
            "from": self.from_item,
            "last_page": self.last_page,
            "page_name": self.page_name,
            "per_page": self.per_page,
            "to": self.to_item,
            "total": self.total,
        }
