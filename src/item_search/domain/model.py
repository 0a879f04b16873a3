"""Domain models for the item search engine.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- Domain logic lives in domain layer
- No infrastructure dependencies
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class Item(BaseModel):
    """A single dataset record.

    Ids are dense (1..N) and match the record's position in the dataset, so
    ``items[item.id - 1] is item`` for every well-formed dataset.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: PositiveInt
    name: str = ""
    address: str = ""
    description: str = ""
    city: str = ""
    is_male: bool = Field(default=False, alias="isMale")

    def search_text(self) -> str:
        """Concatenated text indexed for this item."""
        return f"{self.name} {self.address} {self.description} {self.city}"


class ViewState(BaseModel):
    """Client view preferences stored alongside a session."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    search: str = ""
    sort_by: str | None = Field(default=None, alias="sortBy")
    sort_dir: Literal["asc", "desc"] = Field(default="asc", alias="sortDir")


class SearchPage(BaseModel):
    """Ordered ids returned by the query entry point.

    ``total_found`` is the uncapped match count, so it can exceed ``len(ids)``.
    """

    model_config = ConfigDict(frozen=True)

    ids: list[int] = Field(default_factory=list)
    total_found: int = 0

    @classmethod
    def empty(cls) -> "SearchPage":
        return cls(ids=[], total_found=0)


class ItemsPage(BaseModel):
    """A window of items over a search result."""

    model_config = ConfigDict(frozen=True)

    items: list[Item] = Field(default_factory=list)
    has_more: bool = False
    total_found: int = 0
