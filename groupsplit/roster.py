"""
Roster provider boundary: who can take part in a group's expenses
"""

import uuid
from typing import Dict, Iterable, List, Optional, Protocol

from groupsplit.data_models import Participant, ParticipantKind


class RosterProvider(Protocol):
    def list_participants(self, group_id: str) -> List[Participant]: ...

    def create_guest(self, group_id: str, name: str) -> Participant: ...


class InMemoryRoster:
    """Members first, then guests, in the order they were added"""

    def __init__(self, members: Optional[Dict[str, Iterable[Participant]]] = None):
        self._groups: Dict[str, List[Participant]] = {
            group_id: list(people) for group_id, people in (members or {}).items()
        }

    def add_member(self, group_id: str, participant_id: str, name: str) -> Participant:
        member = Participant(participant_id, name, ParticipantKind.MEMBER)
        self._groups.setdefault(group_id, []).append(member)
        return member

    def list_participants(self, group_id: str) -> List[Participant]:
        people = self._groups.get(group_id, [])
        members = [p for p in people if not p.is_guest]
        guests = [p for p in people if p.is_guest]
        return members + guests

    def create_guest(self, group_id: str, name: str) -> Participant:
        name = name.strip()
        if not name:
            raise ValueError("Guest name is required")
        guest = Participant(f"guest_{uuid.uuid4().hex}", name, ParticipantKind.GUEST)
        self._groups.setdefault(group_id, []).append(guest)
        return guest
