"""Rebuild a scale reading from per-character detections.

Character labels are matched exactly after trimming whitespace: ``"7"`` is a
digit, ``"7."`` or ``"10"`` are not and are ignored. Units come from a closed
vocabulary and never from the digit set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence

from gauge_reader.config.models import DIGIT_LABELS, NO_READING_PLACEHOLDER, UNIT_LABELS, VocabularyConfig
from gauge_reader.core.entities import Detection


@dataclass(frozen=True)
class VocabularyRules:
    """Closed label sets for digits/decimal point and units."""

    digits: FrozenSet[str] = frozenset(DIGIT_LABELS)
    units: FrozenSet[str] = frozenset(UNIT_LABELS)
    placeholder: str = NO_READING_PLACEHOLDER

    @classmethod
    def from_config(cls, config: VocabularyConfig) -> "VocabularyRules":
        return cls(
            digits=frozenset(label.strip() for label in config.digits),
            units=frozenset(label.strip() for label in config.units),
            placeholder=config.placeholder,
        )

    def is_digit(self, label: str) -> bool:
        return label.strip() in self.digits

    def is_unit(self, label: str) -> bool:
        return label.strip() in self.units


@dataclass(frozen=True)
class Reading:
    """Reconstructed reading and unit."""

    reading: str
    unit: str
    placeholder: str = NO_READING_PLACEHOLDER

    @property
    def has_reading(self) -> bool:
        return self.reading != self.placeholder

    @property
    def text(self) -> str:
        if not self.unit:
            return self.reading
        return f"{self.reading} {self.unit}"


DEFAULT_RULES = VocabularyRules()


def digit_detections(detections: Iterable[Detection], rules: VocabularyRules = DEFAULT_RULES) -> List[Detection]:
    """Digit and decimal-point detections sorted left to right.

    ``sorted`` is stable, so boxes sharing a left edge keep their input order.
    """
    selected = [det for det in detections if rules.is_digit(det.label)]
    return sorted(selected, key=lambda det: det.bbox.left)


def best_unit_detection(
    detections: Iterable[Detection], rules: VocabularyRules = DEFAULT_RULES
) -> Optional[Detection]:
    """Most confident unit detection; the first one wins on ties."""
    best: Optional[Detection] = None
    for det in detections:
        if not rules.is_unit(det.label):
            continue
        if best is None or det.confidence > best.confidence:
            best = det
    return best


def reconstruct_reading(detections: Sequence[Detection], rules: VocabularyRules = DEFAULT_RULES) -> Reading:
    """Turn combined character and unit detections into a Reading."""
    detections = list(detections)
    reading = "".join(det.label.strip() for det in digit_detections(detections, rules))
    if not reading:
        reading = rules.placeholder

    unit_detection = best_unit_detection(detections, rules)
    unit = unit_detection.label.strip() if unit_detection is not None else ""
    return Reading(reading=reading, unit=unit, placeholder=rules.placeholder)


def select_overlay_detections(
    detections: Sequence[Detection], rules: VocabularyRules = DEFAULT_RULES
) -> List[Detection]:
    """Detections worth drawing: every digit/point, then the best unit."""
    selected = [det for det in detections if rules.is_digit(det.label)]
    unit_detection = best_unit_detection(detections, rules)
    if unit_detection is not None:
        selected.append(unit_detection)
    return selected
