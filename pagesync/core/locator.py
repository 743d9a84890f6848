# pagesync/core/locator.py
from __future__ import annotations

"""Locators and action requests
-------------------------------
A Locator names what to find; an ActionRequest pairs it with the mutation to
apply once found. Both are plain values: the element is looked up again on
every attempt, so no handle outlives a single `perform()` call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocatorKind(str, Enum):
    link_or_button = "link_or_button"
    link = "link"
    button = "button"
    fillable_field = "fillable_field"
    radio_button = "radio_button"
    checkbox = "checkbox"
    select = "select"
    option = "option"
    file_field = "file_field"


class Mutation(str, Enum):
    click = "click"
    set = "set"
    select_option = "select_option"
    unselect_option = "unselect_option"


class Locator(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: LocatorKind
    value: str = Field(..., description="Id, name, label, text or value to match")
    filters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        if v is None:
            raise ValueError("locator value cannot be None")
        return str(v)

    def describe(self) -> str:
        extra = f" {self.filters}" if self.filters else ""
        return f"{self.kind.value} {self.value!r}{extra}"


# ---------- Collaborator contracts ----------

@runtime_checkable
class SearchContext(Protocol):
    """Anything elements can be looked up in: the page root or an element."""

    def find(self, kind: LocatorKind, value: str, filters: Mapping[str, Any]) -> "ElementHandle":
        """Return the single match or raise ElementNotFound / AmbiguousMatch / InvalidLocator."""
        ...


@runtime_checkable
class ElementHandle(SearchContext, Protocol):
    """A located element; valid for one attempt only."""

    def click(self) -> None: ...

    def set(self, value: Any) -> None:
        """Set a scalar value, a checked state (bool) or a list of file paths."""
        ...

    def select_option(self) -> None: ...

    def unselect_option(self) -> None: ...


def find(context: SearchContext, locator: Locator) -> ElementHandle:
    return context.find(locator.kind, locator.value, dict(locator.filters))


# ---------- Action request ----------

@dataclass(frozen=True)
class ActionRequest:
    locator: Locator
    mutation: Mutation
    argument: Any = None
    wait_ms: Optional[int] = None
    within: Optional[Locator] = None

    def perform(self, context: SearchContext) -> None:
        """Locate the target (through `within` when given) and apply the mutation."""
        scope = find(context, self.within) if self.within is not None else context
        element = find(scope, self.locator)
        if self.mutation is Mutation.click:
            element.click()
        elif self.mutation is Mutation.set:
            element.set(self.argument)
        elif self.mutation is Mutation.select_option:
            element.select_option()
        elif self.mutation is Mutation.unselect_option:
            element.unselect_option()
        else:
            raise NotImplementedError(f"Unsupported mutation: {self.mutation}")

    def describe(self) -> str:
        scope = f" within {self.within.describe()}" if self.within is not None else ""
        return f"{self.mutation.value} {self.locator.describe()}{scope}"


__all__ = [
    "LocatorKind",
    "Mutation",
    "Locator",
    "SearchContext",
    "ElementHandle",
    "ActionRequest",
    "find",
]
