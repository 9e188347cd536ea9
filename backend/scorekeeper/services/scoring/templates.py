"""Scoring templates.

Each template is a frozen dataclass holding the typed score fields of one
player and a ``compute_score`` method. ``TEMPLATES`` maps a game's template
id to its sheet class; unknown ids resolve to the generic sheet.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import ClassVar, Dict, Mapping, Optional, Tuple, Type

from scorekeeper.errors import ValidationError

GENERIC = 'generic'
CATAN = 'catan'
TICKET_TO_RIDE = 'ticket-to-ride'
WINGSPAN = 'wingspan'
SEVEN_WONDERS = 'seven-wonders'

NUMBER = 'number'
FLAG = 'flag'

MAX_INT = 2 ** 63 - 1
MIN_INT = -2 ** 63


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    kind: str = NUMBER
    # Inclusive lower bound; None means any integer is accepted.
    min: Optional[int] = 0

    def to_dict(self):
        data = {'name': self.name, 'label': self.label, 'kind': self.kind}
        if self.kind == NUMBER:
            data['min'] = self.min
        return data


# The generic score is unconstrained while entering rounds.
ROUND_SCORE_FIELD = FieldSpec('score', 'Score', min=None)


def coerce_int(value, field: str, minimum: Optional[int] = None) -> int:
    """Read a whole number the way a numeric form input would."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f'{field} is required', field=field)
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a whole number', field=field)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValidationError(f'{field} must be a whole number', field=field)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f'{field} must be a whole number', field=field)
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f'{field} must be a whole number', field=field)
    if minimum is not None and value < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field=field)
    return check_int_range(value, field)


def check_int_range(value: int, field: str) -> int:
    """Scores are stored as signed 64-bit integers."""
    if not MIN_INT <= value <= MAX_INT:
        raise ValidationError(f'{field} is too large', field=field)
    return value


def coerce_flag(value, field: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise ValidationError(f'{field} must be true or false', field=field)


class ScoreSheet(ABC):
    template_id: ClassVar[str]
    label: ClassVar[str]
    FIELDS: ClassVar[Tuple[FieldSpec, ...]]

    @classmethod
    def from_fields(cls, raw: Mapping) -> 'ScoreSheet':
        if not isinstance(raw, Mapping):
            raise ValidationError('Score fields must be an object')
        values = {}
        for field_def in cls.FIELDS:
            if field_def.kind == FLAG:
                values[field_def.name] = coerce_flag(raw.get(field_def.name), field_def.name)
            else:
                values[field_def.name] = coerce_int(raw.get(field_def.name), field_def.name, field_def.min)
        return cls(**values)

    @classmethod
    def schema(cls):
        return {
            'id': cls.template_id,
            'label': cls.label,
            'rounds': cls.template_id == GENERIC,
            'fields': [field_def.to_dict() for field_def in cls.FIELDS],
        }

    @abstractmethod
    def compute_score(self) -> int:
        ...

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GenericSheet(ScoreSheet):
    template_id: ClassVar[str] = GENERIC
    label: ClassVar[str] = 'Generic'
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = (
        FieldSpec('score', 'Score'),
    )

    score: int

    def compute_score(self) -> int:
        return self.score


@dataclass(frozen=True)
class CatanSheet(ScoreSheet):
    template_id: ClassVar[str] = CATAN
    label: ClassVar[str] = 'Catan'
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = (
        FieldSpec('victory_points', 'Victory Points'),
        FieldSpec('longest_road', 'Longest Road', kind=FLAG),
        FieldSpec('largest_army', 'Largest Army', kind=FLAG),
    )

    victory_points: int
    longest_road: bool = False
    largest_army: bool = False

    def compute_score(self) -> int:
        score = self.victory_points
        if self.longest_road:
            score += 2
        if self.largest_army:
            score += 2
        return score


@dataclass(frozen=True)
class TicketToRideSheet(ScoreSheet):
    template_id: ClassVar[str] = TICKET_TO_RIDE
    label: ClassVar[str] = 'Ticket to Ride'
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = (
        FieldSpec('routes', 'Route Points'),
        FieldSpec('tickets', 'Destination Tickets', min=None),
        FieldSpec('longest_path', 'Longest Path', kind=FLAG),
    )

    routes: int
    tickets: int
    longest_path: bool = False

    def compute_score(self) -> int:
        return self.routes + self.tickets + (10 if self.longest_path else 0)


@dataclass(frozen=True)
class WingspanSheet(ScoreSheet):
    template_id: ClassVar[str] = WINGSPAN
    label: ClassVar[str] = 'Wingspan'
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = (
        FieldSpec('birds', 'Birds'),
        FieldSpec('bonus_cards', 'Bonus Cards'),
        FieldSpec('end_of_round', 'End-of-Round Goals', min=None),
        FieldSpec('eggs', 'Eggs'),
        FieldSpec('food_cache', 'Food on Cards'),
        FieldSpec('tucked_cards', 'Tucked Cards'),
    )

    birds: int
    bonus_cards: int
    end_of_round: int
    eggs: int
    food_cache: int
    tucked_cards: int

    def compute_score(self) -> int:
        return (self.birds + self.bonus_cards + self.end_of_round
                + self.eggs + self.food_cache + self.tucked_cards)


@dataclass(frozen=True)
class SevenWondersSheet(ScoreSheet):
    template_id: ClassVar[str] = SEVEN_WONDERS
    label: ClassVar[str] = '7 Wonders'
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = (
        FieldSpec('civilian', 'Civilian Structures'),
        FieldSpec('science', 'Scientific Structures'),
        FieldSpec('commercial', 'Commercial Structures'),
        FieldSpec('guilds', 'Guilds'),
        FieldSpec('military', 'Military Conflicts', min=None),
        FieldSpec('wonder', 'Wonder'),
        FieldSpec('coins', 'Coins'),
    )

    civilian: int
    science: int
    commercial: int
    guilds: int
    military: int
    wonder: int
    coins: int

    def compute_score(self) -> int:
        # coins are never negative, so floor division truncates toward zero
        return (self.civilian + self.science + self.commercial + self.guilds
                + self.military + self.wonder + self.coins // 3)


TEMPLATES: Dict[str, Type[ScoreSheet]] = {
    sheet.template_id: sheet
    for sheet in (GenericSheet, CatanSheet, TicketToRideSheet, WingspanSheet, SevenWondersSheet)
}

TEMPLATE_IDS = tuple(TEMPLATES)


def is_known_template(template_id: str) -> bool:
    return template_id in TEMPLATES


def get_template(template_id: str) -> Type[ScoreSheet]:
    """Return the sheet class for a template id, defaulting to generic."""
    return TEMPLATES.get(template_id, GenericSheet)


def compute_score(template_id: str, fields: Mapping) -> int:
    return get_template(template_id).from_fields(fields).compute_score()
