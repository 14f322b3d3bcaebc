"""Ship-name helpers and the tracked DM conversation name.

Ship names travel in two spellings on the wire: with the `~` sigil
(`~zod`, used for addressing pokes) and without it (`zod`, used in graph
authors and resource ships). Comparisons always use the sigil-less form.
"""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict

DM_NAME_PREFIX: Final[str] = "dm--"


def without_sig(ship: str) -> str:
    """Return `ship` without a leading `~`."""

    return ship.strip().removeprefix("~")


def with_sig(ship: str) -> str:
    """Return `ship` with exactly one leading `~`."""

    return "~" + without_sig(ship)


class ConversationIdentity(BaseModel):
    """Name of the single DM resource a session manages.

    Invariant: derived once per session and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    name: str


def derive_conversation_identity(ship_name: str) -> ConversationIdentity:
    return ConversationIdentity(name=DM_NAME_PREFIX + without_sig(ship_name))
