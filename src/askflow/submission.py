"""Pre-parsed user submissions and the user turn they produce."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass

from askflow.conversation import Role, Turn, TurnKind, new_id

SKIP_CONTENT = json.dumps({"action": "skip"})


@dataclass(frozen=True)
class Submission:
    """One `{formData, skip}` pair as delivered by the presentation layer."""

    form_data: Mapping[str, str] | None = None
    skip: bool = False

    @classmethod
    def text(cls, message: str) -> Submission:
        return cls(form_data={"input": message})

    @classmethod
    def related(cls, query: str) -> Submission:
        return cls(form_data={"related_query": query})


def user_turn_for(submission: Submission) -> Turn | None:
    """Build the user turn recorded for a submission, if any."""

    if submission.skip:
        return Turn(id=new_id(), role=Role.USER, content=SKIP_CONTENT)
    if not submission.form_data:
        return None

    form = dict(submission.form_data)
    if "input" in form:
        kind = TurnKind.INPUT
    elif "related_query" in form:
        kind = TurnKind.INPUT_RELATED
    else:
        kind = TurnKind.INQUIRY
    return Turn(id=new_id(), role=Role.USER, content=json.dumps(form, ensure_ascii=False), kind=kind)
