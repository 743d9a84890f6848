# pagesync/core/script_loader.py
from __future__ import annotations

"""Interaction script schema and loader
---------------------------------------
Pydantic models for YAML interaction scripts: an optional start URL plus a
list of steps, one step type per facade action. Supports `${ENV}`
substitution and multi-document files.
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union
import os
import re

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.functional_validators import BeforeValidator


# ---------- Helpers ----------


def _to_abs_path(p: str | Path) -> Path:
    pth = Path(p) if not isinstance(p, Path) else p
    return pth if pth.is_absolute() else Path.cwd() / pth


def _to_list(v: Any) -> Any:
    return [v] if isinstance(v, (str, Path)) else v


def _scalar_to_str(v: Any) -> Any:
    # YAML reads `with: 42` or `option: 2024` as numbers
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


AbsPath = Annotated[Path, BeforeValidator(_to_abs_path)]
PathList = Annotated[list[AbsPath], BeforeValidator(_to_list)]
YamlText = Annotated[str, BeforeValidator(_scalar_to_str)]

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Short names accepted in YAML
_ACTION_ALIASES = {"click_on": "click_link_or_button", "goto": "visit"}


class ActionName(str, Enum):
    visit = "visit"
    click_link_or_button = "click_link_or_button"
    click_link = "click_link"
    click_button = "click_button"
    fill_in = "fill_in"
    choose = "choose"
    check = "check"
    uncheck = "uncheck"
    select = "select"
    unselect = "unselect"
    attach_file = "attach_file"


# ---------- Step models (discriminated union by 'action') ----------


class StepBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    action: ActionName
    name: Optional[str] = Field(default=None, description="Human-friendly step label")
    wait_ms: Optional[int] = Field(default=None, ge=0, description="Override the default wait for this step")
    options: dict[str, Any] = Field(default_factory=dict, description="Extra locator filters, e.g. exact")
    optional: bool = Field(default=False, description="If true, ignore failure and continue")


class LocatorStep(StepBase):
    locator: YamlText = Field(..., description="Id, name, label or text of the target")

    @field_validator("locator")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("locator cannot be empty")
        return v


class StepVisit(StepBase):
    action: Literal[ActionName.visit]
    url: str = Field(..., description="Absolute URL")

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith("http"):
            raise ValueError("visit.url must be an absolute http(s) URL")
        return v


class StepClickLinkOrButton(LocatorStep):
    action: Literal[ActionName.click_link_or_button]


class StepClickLink(LocatorStep):
    action: Literal[ActionName.click_link]
    href: Optional[str] = None


class StepClickButton(LocatorStep):
    action: Literal[ActionName.click_button]


class StepFillIn(LocatorStep):
    action: Literal[ActionName.fill_in]
    value: YamlText = Field(..., alias="with", description="Text to fill in")


class StepChoose(LocatorStep):
    action: Literal[ActionName.choose]


class StepCheck(LocatorStep):
    action: Literal[ActionName.check]


class StepUncheck(LocatorStep):
    action: Literal[ActionName.uncheck]


class StepSelect(StepBase):
    action: Literal[ActionName.select]
    option: YamlText = Field(..., description="Text of the option")
    select_box: Optional[YamlText] = Field(default=None, alias="from", description="Id, name or label of the select box")


class StepUnselect(StepBase):
    action: Literal[ActionName.unselect]
    option: YamlText
    select_box: Optional[YamlText] = Field(default=None, alias="from")


class StepAttachFile(LocatorStep):
    action: Literal[ActionName.attach_file]
    files: PathList = Field(..., description="One or more local files")


Step = Annotated[
    Union[
        StepVisit,
        StepClickLinkOrButton,
        StepClickLink,
        StepClickButton,
        StepFillIn,
        StepChoose,
        StepCheck,
        StepUncheck,
        StepSelect,
        StepUnselect,
        StepAttachFile,
    ],
    Field(discriminator="action"),
]


# ---------- Script model ----------


class Script(BaseModel):
    version: str = Field(default="1")
    name: str = Field(..., description="Script name, e.g. 'checkout'")
    description: Optional[str] = None
    start_url: Optional[str] = None
    steps: list[Step]

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


# ---------- Normalization ----------


def _subst_env(obj: Any) -> Any:
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def _normalize(data: dict, p: Path) -> dict:
    data = dict(data)
    data.setdefault("name", p.stem)
    steps = []
    for s in data.get("steps") or []:
        if isinstance(s, dict) and s.get("action") in _ACTION_ALIASES:
            s = {**s, "action": _ACTION_ALIASES[s["action"]]}
        steps.append(s)
    data["steps"] = steps
    return _subst_env(data)


def _validate(data: dict, p: Path, label: str) -> Script:
    try:
        return Script.model_validate(_normalize(data, p))
    except ValidationError as ve:
        lines = [f"Invalid script '{p}'{label}:"]
        for e in ve.errors():
            loc = ".".join(str(part) for part in e.get("loc", []))
            lines.append(f"  - {loc}: {e.get('msg', 'invalid value')}")
        raise ValueError("\n".join(lines)) from ve


# ---------- Public API ----------


def load_script(path: Path | str) -> Script:
    """Load a single-document script."""
    return load_scripts_file(path)[0]


def load_scripts_file(path: Path | str) -> list[Script]:
    """Load one or more scripts from a YAML file (supports multi-document)."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Script file not found: {p}")
    try:
        docs = list(yaml.safe_load_all(p.read_text(encoding="utf-8")))
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {p}: {ye}") from ye

    out: list[Script] = []
    multi = len(docs) > 1
    for idx, data in enumerate(docs, start=1):
        if data is None:
            continue
        if not isinstance(data, dict):
            raise ValueError(f"Document {idx} in {p} must be a mapping/object.")
        out.append(_validate(data, p, f" (document {idx})" if multi else ""))
    if not out:
        raise ValueError(f"No script documents found in {p}")
    return out


def find_script_files(root: Path, recursive: bool = True) -> list[Path]:
    if recursive:
        return sorted(list(root.rglob("*.yaml")) + list(root.rglob("*.yml")))
    return sorted(list(root.glob("*.yaml")) + list(root.glob("*.yml")))


__all__ = [
    "ActionName",
    "Script",
    "Step",
    "load_script",
    "load_scripts_file",
    "find_script_files",
]
