"""Workflow definitions: user-defined task lifecycle state machines.

A workflow is a list of stages, each one of:
  - linear: moves on to ``next`` (or the following stage in the list)
  - cycle: loops through its sub-stages until it proceeds elsewhere
  - terminal: the end of the workflow, with no ``next``

Every ``next``/``canProceedTo`` reference is checked when the definition is
loaded, so traversal never meets a dangling stage id.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from taskmark.errors import WorkflowDefinitionError

STAGE_MARKER = re.compile(r"\[stage::(?P<stage>[^\]]+)\]")
WORKFLOW_TAG = re.compile(r"#workflow/(?P<type>[^/\s]+)")
ROOT_STAGE = "root"


class SubStage(BaseModel):
    """A step inside a cycle stage."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    next: Optional[str] = None


class _Stage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    can_proceed_to: list[str] = Field(default_factory=list, alias="canProceedTo")


class LinearStage(_Stage):
    type: Literal["linear"] = "linear"
    next: Union[str, list[str], None] = None

    @property
    def next_ids(self) -> list[str]:
        if self.next is None:
            return []
        return [self.next] if isinstance(self.next, str) else list(self.next)


class CycleStage(_Stage):
    type: Literal["cycle"] = "cycle"
    next: Union[str, list[str], None] = None
    sub_stages: list[SubStage] = Field(default_factory=list, alias="subStages")

    @property
    def next_ids(self) -> list[str]:
        if self.next is None:
            return []
        return [self.next] if isinstance(self.next, str) else list(self.next)

    def sub_stage(self, sub_stage_id: str) -> Optional[SubStage]:
        return next((sub for sub in self.sub_stages if sub.id == sub_stage_id), None)


class TerminalStage(_Stage):
    type: Literal["terminal"] = "terminal"

    @model_validator(mode="before")
    @classmethod
    def _no_next(cls, data):
        if isinstance(data, dict) and data.get("next"):
            raise ValueError(f"terminal stage '{data.get('id')}' cannot have a next stage")
        return data

    @property
    def next_ids(self) -> list[str]:
        return []


WorkflowStage = Annotated[Union[LinearStage, CycleStage, TerminalStage], Field(discriminator="type")]


class WorkflowMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str = "1.0"
    created: Optional[str] = None
    last_modified: Optional[str] = Field(None, alias="lastModified")


@dataclass(frozen=True)
class StageTransition:
    """Where a task moves next."""

    stage_id: str
    sub_stage_id: Optional[str] = None

    @property
    def marker(self) -> str:
        """Inline stage marker, e.g. ``[stage::review.draft]``."""
        if self.sub_stage_id:
            return f"[stage::{self.stage_id}.{self.sub_stage_id}]"
        return f"[stage::{self.stage_id}]"


@dataclass(frozen=True)
class WorkflowInfo:
    """Workflow markers found on a task line."""

    workflow_type: Optional[str]  # None when the workflow comes from a parent task
    current_stage: str
    sub_stage: Optional[str] = None


def extract_workflow_info(line: str) -> Optional[WorkflowInfo]:
    """Read ``[stage::id]``, ``[stage::id.sub]`` or ``#workflow/<type>`` from a line."""
    stage = STAGE_MARKER.search(line)
    if stage:
        stage_id, _, sub_stage = stage.group("stage").strip().partition(".")
        return WorkflowInfo(workflow_type=None, current_stage=stage_id, sub_stage=sub_stage or None)

    tag = WORKFLOW_TAG.search(line)
    if tag:
        return WorkflowInfo(workflow_type=tag.group("type"), current_stage=ROOT_STAGE)

    return None


class WorkflowDefinition(BaseModel):
    """A validated workflow."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    stages: list[WorkflowStage] = Field(default_factory=list)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)

    @model_validator(mode="after")
    def _check_references(self) -> "WorkflowDefinition":
        ids = [stage.id for stage in self.stages]
        duplicates = sorted({stage_id for stage_id in ids if ids.count(stage_id) > 1})
        if duplicates:
            raise ValueError(f"duplicate stage ids: {', '.join(duplicates)}")

        known = set(ids)
        for stage in self.stages:
            for target in stage.next_ids + stage.can_proceed_to:
                if target not in known:
                    raise ValueError(f"stage '{stage.id}' refers to unknown stage '{target}'")
            if isinstance(stage, CycleStage):
                _check_ring(stage)
        return self

    @classmethod
    def load(cls, data: dict) -> "WorkflowDefinition":
        """Validate a raw definition, raising WorkflowDefinitionError on failure."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            workflow_id = data.get("id") if isinstance(data, dict) else None
            messages = "; ".join(error["msg"] for error in e.errors())
            raise WorkflowDefinitionError(messages, workflow_id=workflow_id) from e

    @classmethod
    def from_file(cls, path: Path) -> "WorkflowDefinition":
        """Load a definition from a JSON or YAML file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise WorkflowDefinitionError(f"Could not read {path}: {e}") from e
        if not isinstance(data, dict):
            raise WorkflowDefinitionError(f"{path} must contain a mapping")
        return cls.load(data)

    def stage(self, stage_id: str) -> Optional[Union[LinearStage, CycleStage, TerminalStage]]:
        return next((stage for stage in self.stages if stage.id == stage_id), None)

    def next_stage(self, stage_id: str, sub_stage_id: Optional[str] = None) -> Optional[StageTransition]:
        """Compute the transition out of a stage.

        Args:
            stage_id: Current stage, or ``root`` for a task that only carries the workflow tag
            sub_stage_id: Current sub-stage of a cycle stage

        Returns:
            The next stage (and sub-stage), or None at a terminal stage or the end of the list
        """
        if not self.stages:
            return None

        if stage_id == ROOT_STAGE:
            return self._enter(self.stages[0].id)

        current = self.stage(stage_id)
        if current is None:
            logger.debug(f"Unknown stage '{stage_id}' in workflow '{self.id}'")
            return None

        if isinstance(current, TerminalStage):
            return None

        if isinstance(current, CycleStage):
            sub_stage = current.sub_stage(sub_stage_id) if sub_stage_id else None
            if sub_stage is not None:
                if sub_stage.next:
                    return StageTransition(current.id, sub_stage.next)
                if current.can_proceed_to:
                    return self._enter(current.can_proceed_to[0])
                first = current.sub_stages[0].id if current.sub_stages else None
                return StageTransition(current.id, first)
            if current.can_proceed_to:
                return self._enter(current.can_proceed_to[0])
            return StageTransition(current.id)

        # linear
        if current.next_ids:
            return self._enter(current.next_ids[0])
        if current.can_proceed_to:
            return self._enter(current.can_proceed_to[0])
        index = self.stages.index(current)
        if index < len(self.stages) - 1:
            return self._enter(self.stages[index + 1].id)
        return None

    def _enter(self, stage_id: str) -> StageTransition:
        target = self.stage(stage_id)
        if isinstance(target, CycleStage) and target.sub_stages:
            return StageTransition(target.id, target.sub_stages[0].id)
        return StageTransition(stage_id)


def _check_ring(stage: CycleStage) -> None:
    """Sub-stage ``next`` links must stay inside the stage and lead back to the first sub-stage.

    A sub-stage without ``next`` closes the ring by returning to the first.
    """
    if not stage.sub_stages:
        return

    known = {sub.id for sub in stage.sub_stages}
    for sub in stage.sub_stages:
        if sub.next is not None and sub.next not in known:
            raise ValueError(f"sub-stage '{sub.id}' of '{stage.id}' refers to unknown sub-stage '{sub.next}'")

    first = stage.sub_stages[0]
    visited = {first.id}
    current = first
    while current.next is not None and current.next != first.id:
        if current.next in visited:
            raise ValueError(f"sub-stages of '{stage.id}' loop without returning to '{first.id}'")
        visited.add(current.next)
        current = stage.sub_stage(current.next)

    unreachable = [sub.id for sub in stage.sub_stages if sub.id not in visited]
    if unreachable:
        raise ValueError(
            f"sub-stages of '{stage.id}' not reachable from '{first.id}': {', '.join(unreachable)}"
        )
