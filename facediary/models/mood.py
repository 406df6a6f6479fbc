"""Mood vocabulary and mood distributions."""

from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple


class Mood(str, Enum):
    """Fixed mood vocabulary used to annotate diary entries."""

    HAPPINESS = "happiness"
    SADNESS = "sadness"
    ANGER = "anger"
    SURPRISE = "surprise"
    CALM = "calm"
    NEUTRAL = "neutral"

    @property
    def emoji(self) -> str:
        return _EMOJI[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()


_EMOJI = {
    Mood.HAPPINESS: "\U0001F604",
    Mood.SADNESS: "\U0001F622",
    Mood.ANGER: "\U0001F620",
    Mood.SURPRISE: "\U0001F62E",
    Mood.CALM: "\U0001F60C",
    Mood.NEUTRAL: "\U0001F610",
}


class MoodDistribution(Mapping):
    """Read-only mapping of ``Mood`` to a non-negative score."""

    __slots__ = ("_scores",)

    def __init__(self, scores: Mapping[Mood, float] = None):
        frozen: Dict[Mood, float] = {}
        for mood, score in (scores or {}).items():
            score = float(score)
            if score < 0.0:
                raise ValueError(f"Mood score must be non-negative, got {score} for {mood}")
            frozen[Mood(mood)] = score
        self._scores = MappingProxyType(frozen)

    def __getitem__(self, mood: Mood) -> float:
        return self._scores[Mood(mood)]

    def __iter__(self) -> Iterator[Mood]:
        return iter(self._scores)

    def __len__(self) -> int:
        return len(self._scores)

    def __eq__(self, other) -> bool:
        if isinstance(other, Mapping):
            return dict(self._scores) == {Mood(k): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        body = ", ".join(f"{m.value}={s:.3f}" for m, s in self._scores.items())
        return f"MoodDistribution({body})"

    @property
    def total(self) -> float:
        return sum(self._scores.values())

    @property
    def primary(self) -> Optional[Mood]:
        return primary_mood(self)

    def sorted(self) -> List[Tuple[Mood, float]]:
        return sorted_moods(self)

    def pruned(self, minimum: float) -> "MoodDistribution":
        """Copy without moods scoring at or below ``minimum``."""
        return MoodDistribution({m: s for m, s in self._scores.items() if s > minimum})

    def to_dict(self) -> Dict[str, float]:
        return {mood.value: score for mood, score in self._scores.items()}


def primary_mood(scores: Mapping[Mood, float]) -> Optional[Mood]:
    """Mood with the highest score, or None for an empty distribution."""
    if not scores:
        return None
    return max(scores.items(), key=lambda item: item[1])[0]


def sorted_moods(scores: Mapping[Mood, float]) -> List[Tuple[Mood, float]]:
    return sorted(scores.items(), key=lambda item: item[1], reverse=True)


def percentage_string(score: float) -> str:
    return f"{score * 100:.0f}%"
