"""
Data models for quadratic voting events
"""
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

NOT_STARTED = "NOT_STARTED"
OPEN = "OPEN"
ENDED = "ENDED"


def parse_datetime(value) -> datetime:
    """ISO-8601 string (or datetime) to an aware datetime; naive means UTC"""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Option:
    """A voteable option, identified by its position in the event"""
    title: str
    description: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Option':
        return cls(
            title=data["title"],
            description=data.get("description") or "",
            url=data.get("url") or "",
        )


@dataclass
class Event:
    """A quadratic voting event"""
    id: str
    title: str
    description: str
    credits_per_voter: int
    start_date: datetime
    end_date: datetime
    options: List[Option] = field(default_factory=list)

    def __post_init__(self):
        if self.credits_per_voter < 0:
            raise ValueError("credits_per_voter must be >= 0")
        self.start_date = parse_datetime(self.start_date)
        self.end_date = parse_datetime(self.end_date)

    def phase(self, now: Optional[datetime] = None) -> str:
        now = parse_datetime(now) if now is not None else utc_now()
        if now < self.start_date:
            return NOT_STARTED
        if now > self.end_date:
            return ENDED
        return OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "credits_per_voter": self.credits_per_voter,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "options": [option.to_dict() for option in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            credits_per_voter=int(data["credits_per_voter"]),
            start_date=data["start_date"],
            end_date=data["end_date"],
            options=[Option.from_dict(o) for o in data.get("options", [])],
        )


@dataclass
class VoterRecord:
    """Persisted voter: last submitted votes plus signature proof"""
    id: str
    event_id: str
    hash: str
    votes: List[int]
    signature: Optional[str] = None
    public_key: Optional[str] = None
    mudamos_url: Optional[str] = None

    @property
    def signature_exists(self) -> bool:
        return self.signature is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["votes"] = list(self.votes)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VoterRecord':
        return cls(
            id=data["id"],
            event_id=data["event_id"],
            hash=data["hash"],
            votes=list(data["votes"]),
            signature=data.get("signature"),
            public_key=data.get("public_key"),
            mudamos_url=data.get("mudamos_url"),
        )


def to_find_response(voter: VoterRecord, event: Event) -> Dict[str, Any]:
    """Wire form served by GET /api/events/find"""
    return {
        "event_id": event.id,
        "event_data": {
            "event_title": event.title,
            "event_description": event.description,
            "credits_per_voter": event.credits_per_voter,
            "start_event_date": event.start_date.isoformat(),
            "end_event_date": event.end_date.isoformat(),
        },
        "vote_data": [
            {
                "title": option.title,
                "description": option.description,
                "url": option.url,
                "votes": votes,
            }
            for option, votes in zip(event.options, voter.votes)
        ],
        "signature_exists": voter.signature_exists,
        "mudamos_url": voter.mudamos_url,
    }


def from_find_response(voter_id: str, data: Dict[str, Any]):
    """Inverse of to_find_response, as seen by the voter client.

    The hash and the signature itself never leave the server, so the client
    side record only knows whether a signature exists.
    """
    event_data = data["event_data"]
    event = Event(
        id=data["event_id"],
        title=event_data["event_title"],
        description=event_data.get("event_description", ""),
        credits_per_voter=int(event_data["credits_per_voter"]),
        start_date=event_data["start_event_date"],
        end_date=event_data["end_event_date"],
        options=[Option.from_dict(item) for item in data["vote_data"]],
    )
    voter = VoterRecord(
        id=voter_id,
        event_id=event.id,
        hash="",
        votes=[int(item["votes"]) for item in data["vote_data"]],
        signature="" if data.get("signature_exists") else None,
        mudamos_url=data.get("mudamos_url"),
    )
    return event, voter
