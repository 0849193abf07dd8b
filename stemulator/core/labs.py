from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

BUNDLED_LABS_PATH = Path(__file__).resolve().parent.parent / "data" / "labs.json"


@dataclass
class LearningGoals:
    big_idea: str = ""
    objectives: List[str] = field(default_factory=list)
    success_criteria: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LearningGoals":
        data = data or {}
        return cls(
            big_idea=str(data.get("bigIdea", data.get("big_idea", ""))),
            objectives=list(data.get("objectives", [])),
            success_criteria=list(data.get("successCriteria", data.get("success_criteria", []))),
        )


@dataclass
class LabPart:
    part_id: int
    title: str = ""
    setup: List[str] = field(default_factory=list)
    observations: List[str] = field(default_factory=list)
    evidence: List[str] = field(default_factory=list)
    predictions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LabPart":
        return cls(
            part_id=int(data.get("partId", data.get("part_id"))),
            title=str(data.get("title", "")),
            setup=[str(line) for line in data.get("setup", [])],
            observations=[str(line) for line in data.get("observations", [])],
            evidence=[str(line) for line in data.get("evidence", [])],
            predictions=[str(line) for line in data.get("predictions", [])],
        )


@dataclass
class ScienceLab:
    """Lab descriptor as served by the course backend."""

    id: str
    title: str
    lab_parts: List[LabPart] = field(default_factory=list)
    difficulty: str = "Beginner"
    discipline: str = ""
    topic: str = ""
    sub_topic: str = ""
    description: str = ""
    learning_goals: LearningGoals = field(default_factory=LearningGoals)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScienceLab":
        # The backend names the identifier `labId`; older payloads use `_id`.
        lab_id = data.get("_id") or data.get("labId") or data.get("id")
        if not lab_id:
            raise ValueError("Lab payload has no identifier (_id/labId).")
        return cls(
            id=str(lab_id),
            title=str(data.get("title", "")),
            lab_parts=[LabPart.from_dict(part) for part in data.get("labParts", data.get("lab_parts", []))],
            difficulty=str(data.get("difficulty", "Beginner")),
            discipline=str(data.get("discipline", "")),
            topic=str(data.get("topic", "")),
            sub_topic=str(data.get("subTopic", data.get("sub_topic", ""))),
            description=str(data.get("description", "")),
            learning_goals=LearningGoals.from_dict(data.get("learningGoals", data.get("learning_goals"))),
        )

    def parts_for(self, part_id: Optional[int] = None) -> List[LabPart]:
        if part_id is None:
            return list(self.lab_parts)
        return [part for part in self.lab_parts if part.part_id == part_id]

    def part_ids(self) -> List[int]:
        return [part.part_id for part in self.lab_parts]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_labs(path: Path) -> List[ScienceLab]:
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to load labs from {path}: {exc}") from exc
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError("Lab JSON must be an object or a list of objects.")
    try:
        return [ScienceLab.from_dict(item) for item in data]
    except (TypeError, KeyError, AttributeError) as exc:
        raise ValueError(f"Malformed lab entry in {path}: {exc}") from exc


def bundled_labs() -> List[ScienceLab]:
    return load_labs(BUNDLED_LABS_PATH)


def find_lab(labs: List[ScienceLab], lab_id: str) -> Optional[ScienceLab]:
    for lab in labs:
        if lab.id == lab_id:
            return lab
    return None
