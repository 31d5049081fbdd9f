"""
todosync Models — Wire Shapes for Projects, Tasks and Patches
==============================================================
Pydantic models for everything that crosses the HTTP boundary or
lands in durable storage. Python attributes are snake_case; the JSON
form is camelCase (``projectId``, ``sortIdx``, ``modifiedAt`` ...).

A Patch is a closed, tagged union keyed on ``key``. Each variant
carries a correctly typed ``value``, so an unknown field name or a
value of the wrong type is rejected when the body is decoded, long
before the merger runs.

    TitlePatch      key="title"      value: str
    ProjectIdPatch  key="projectId"  value: str
    SortIdxPatch    key="sortIdx"    value: int
    IsDonePatch     key="isDone"     value: bool
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Iterable, Literal, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr,
    TypeAdapter, model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from todosync.errors import ValidationError


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    def to_json(self) -> dict:
        """Dump to the camelCase JSON form."""
        return self.model_dump(by_alias=True)


# ─────────────────────────────────────────────────────────────
#  Entities
# ─────────────────────────────────────────────────────────────

class Project(_WireModel):
    id: StrictStr = Field(min_length=1)
    title: StrictStr
    sort_idx: StrictInt
    created_at: StrictInt
    modified_at: StrictInt


class Task(_WireModel):
    """A todo item. ``project_id == ""`` means unassigned.

    Dangling project references are tolerated.
    """

    id: StrictStr = Field(min_length=1)
    title: StrictStr
    project_id: StrictStr
    sort_idx: StrictInt
    is_done: StrictBool
    created_at: StrictInt
    modified_at: StrictInt


# ─────────────────────────────────────────────────────────────
#  Patches
# ─────────────────────────────────────────────────────────────

class _PatchBase(_WireModel):
    todo_id: StrictStr
    modified_at: StrictInt

    # Task attribute the variant writes to
    field_name: ClassVar[str]


class TitlePatch(_PatchBase):
    field_name: ClassVar[str] = "title"
    key: Literal["title"]
    value: StrictStr


class ProjectIdPatch(_PatchBase):
    field_name: ClassVar[str] = "project_id"
    key: Literal["projectId"]
    value: StrictStr


class SortIdxPatch(_PatchBase):
    field_name: ClassVar[str] = "sort_idx"
    key: Literal["sortIdx"]
    value: StrictInt


class IsDonePatch(_PatchBase):
    field_name: ClassVar[str] = "is_done"
    key: Literal["isDone"]
    value: StrictBool


Patch = Annotated[
    Union[TitlePatch, ProjectIdPatch, SortIdxPatch, IsDonePatch],
    Field(discriminator="key"),
]

_PATCH = TypeAdapter(Patch)
_PATCH_LIST = TypeAdapter(list[Patch])


# ─────────────────────────────────────────────────────────────
#  Request / Response Bodies
# ─────────────────────────────────────────────────────────────

class StateBody(_WireModel):
    """Body of ``GET /db`` and ``POST /db``."""

    project_list: list[Project]
    todo_list: list[Task]

    @model_validator(mode="after")
    def _unique_task_ids(self) -> StateBody:
        seen: set[str] = set()
        dupes: list[str] = []
        for task in self.todo_list:
            if task.id in seen:
                dupes.append(task.id)
            seen.add(task.id)
        if dupes:
            raise ValueError(f"duplicate task ids: {sorted(set(dupes))}")
        return self


def dump_state(projects: Iterable[Project], tasks: Iterable[Task]) -> dict:
    return {
        "projectList": [p.to_json() for p in projects],
        "todoList": [t.to_json() for t in tasks],
    }


# ─────────────────────────────────────────────────────────────
#  Decoding
# ─────────────────────────────────────────────────────────────

def _wrap(e: PydanticValidationError, what: str) -> ValidationError:
    errors = e.errors(include_url=False, include_context=False)
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", str(e))
    return ValidationError(f"Invalid {what}: {loc}: {msg}" if loc else f"Invalid {what}: {msg}",
                           errors)


def decode_state(data: Any) -> StateBody:
    """Validate a ``{projectList, todoList}`` document.

    Raises:
        ValidationError: On any shape or type mismatch.
    """
    try:
        return StateBody.model_validate(data)
    except PydanticValidationError as e:
        raise _wrap(e, "state") from e


def decode_patch(data: Any):
    """Validate a single patch object into its typed variant."""
    try:
        return _PATCH.validate_python(data)
    except PydanticValidationError as e:
        raise _wrap(e, "patch") from e


def decode_patches(data: Any) -> list:
    """Validate an ordered array of patches. Order is preserved."""
    try:
        return _PATCH_LIST.validate_python(data)
    except PydanticValidationError as e:
        raise _wrap(e, "patch list") from e


# ─────────────────────────────────────────────────────────────
#  Ordering
# ─────────────────────────────────────────────────────────────

def ordered_tasks(tasks: Iterable[Task], project_id: Optional[str] = None) -> list[Task]:
    """Display order: by project, then ``sort_idx``, then ``created_at``.

    ``sort_idx`` is neither contiguous nor unique; the sort is stable,
    so remaining ties keep their stored position.
    """
    selected = [t for t in tasks if project_id is None or t.project_id == project_id]
    return sorted(selected, key=lambda t: (t.project_id, t.sort_idx, t.created_at))
