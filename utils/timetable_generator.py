"""
Timetable Generator Module
Builds one weekly timetable from per-unit candidate classes by running a
randomised greedy construction many times and keeping the best-scoring
result (Monte Carlo search).
"""

import logging
import math
import random
import re
import statistics
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from utils.time_utils import (
    WEEKDAYS,
    active_weeks,
    generate_class_id,
    merge_unavailability_windows,
    normalize_day,
    ranges_overlap,
    time_to_hours,
)

logger = logging.getLogger(__name__)

# Search caps
SIMULATION_ITERATIONS = 5000
SIMULATION_TIMEOUT_MS = 5000
FALLBACK_ATTEMPTS = 100

PREFERENCES = ('spread', 'balanced', 'compact')

# Scoring weights. Completeness must outweigh every other term combined.
COMPLETENESS_WEIGHT = 1000
CLASS_CONFLICT_PENALTY = 30
UNAVAILABILITY_PENALTY = 50
LECTURE_UNAVAILABILITY_PENALTY = 20
GAP_PENALTIES = {'spread': 2, 'balanced': 5, 'compact': 10}


def is_lecture_type(activity_type: str) -> bool:
    return 'lec' in (activity_type or '').lower()


def is_virtual_type(activity_type: str) -> bool:
    return 'virtual' in (activity_type or '').lower()


def base_activity_type(activity_type: str) -> str:
    """Activity type with the 'virtual' marker removed, lower-cased."""
    return re.sub('virtual', '', (activity_type or '').lower(), count=1).strip()


def _text(data: Dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValueError(f'{key} must be a string, got {value!r}')
    return value


@dataclass(frozen=True)
class CandidateSlot:
    """One concrete day/time/location offering of a unit activity."""
    unit_code: str
    activity_type: str
    day: str
    start_time: str
    end_time: str
    location: str = ''
    description: str = ''       # free-text 'class' field, carries the teaching weeks
    teaching_staff: str = ''
    class_title: str = ''

    start_hour: float = field(init=False, repr=False, compare=False)
    end_hour: float = field(init=False, repr=False, compare=False)
    weeks: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'day', normalize_day(self.day))
        start = time_to_hours(self.start_time)
        end = time_to_hours(self.end_time)
        if start >= end:
            raise ValueError(f'Start time {self.start_time} is not before end time {self.end_time}')
        object.__setattr__(self, 'start_hour', start)
        object.__setattr__(self, 'end_hour', end)
        object.__setattr__(self, 'weeks', active_weeks(self.description))

    @property
    def is_lecture(self) -> bool:
        return is_lecture_type(self.activity_type)

    @property
    def is_virtual(self) -> bool:
        return is_virtual_type(self.activity_type)

    @property
    def slot_key(self) -> Tuple[str, str, str]:
        return (self.day, self.start_time, self.end_time)

    @classmethod
    def from_dict(cls, data: Dict, unit_code: str = ''):
        """
        Build from the client's camelCase dict.

        A non-empty unit_code (the unit the dict was supplied under) takes
        precedence over the dict's own unitCode.
        """
        return cls(
            unit_code=unit_code or _text(data, 'unitCode'),
            activity_type=_text(data, 'activityType').strip(),
            day=data.get('dayFormatted') or data.get('day') or '',
            start_time=data.get('startTime', ''),
            end_time=data.get('endTime', ''),
            location=_text(data, 'location'),
            description=_text(data, 'class'),
            teaching_staff=_text(data, 'teachingStaff'),
            class_title=_text(data, 'classTitle'),
        )

    def to_dict(self) -> Dict:
        return {
            'unitCode': self.unit_code,
            'activityType': self.activity_type,
            'dayFormatted': self.day,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'location': self.location,
            'class': self.description,
            'teachingStaff': self.teaching_staff,
            'classTitle': self.class_title,
        }


@dataclass(frozen=True)
class SelectedClass(CandidateSlot):
    """A candidate slot chosen into a timetable."""
    id: str = ''
    has_conflict: bool = False

    def __post_init__(self):
        super().__post_init__()
        if not self.id:
            object.__setattr__(self, 'id', generate_class_id(
                self.unit_code, self.activity_type, self.day, self.start_time,
                self.end_time, self.location, self.description,
            ))

    @classmethod
    def from_candidate(cls, slot: CandidateSlot, has_conflict: bool = False):
        return cls(
            unit_code=slot.unit_code,
            activity_type=slot.activity_type,
            day=slot.day,
            start_time=slot.start_time,
            end_time=slot.end_time,
            location=slot.location,
            description=slot.description,
            teaching_staff=slot.teaching_staff,
            class_title=slot.class_title,
            has_conflict=has_conflict,
        )

    @classmethod
    def from_dict(cls, data: Dict, unit_code: str = ''):
        slot = CandidateSlot.from_dict(data, unit_code)
        selected = cls.from_candidate(slot, has_conflict=bool(data.get('hasConflict', False)))
        if data.get('id'):
            object.__setattr__(selected, 'id', data['id'])
        return selected

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['id'] = self.id
        if self.has_conflict:
            data['hasConflict'] = True
        return data


@dataclass(frozen=True)
class UnavailabilityWindow:
    """A block of whole hours on one day when the user cannot attend."""
    day: str
    start_hour: int
    end_hour: int

    def __post_init__(self):
        object.__setattr__(self, 'day', normalize_day(self.day))
        if not (0 <= self.start_hour < self.end_hour <= 24):
            raise ValueError(
                f'Invalid unavailable block on {self.day}: {self.start_hour}-{self.end_hour}'
            )

    def merged_with(self, end_hour: int) -> 'UnavailabilityWindow':
        return UnavailabilityWindow(self.day, self.start_hour, end_hour)

    def overlaps(self, slot: CandidateSlot) -> bool:
        return slot.day == self.day and ranges_overlap(
            slot.start_hour, slot.end_hour, self.start_hour, self.end_hour
        )

    @classmethod
    def from_dict(cls, data: Dict):
        try:
            return cls(
                day=data.get('day', ''),
                start_hour=int(data['startHour']),
                end_hour=int(data['endHour']),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f'Malformed unavailable block: {data!r}') from e

    def to_dict(self) -> Dict:
        return {'day': self.day, 'startHour': self.start_hour, 'endHour': self.end_hour}


@dataclass
class ActivityGroup:
    """All interchangeable candidates answering one (unit, activity type) requirement."""
    unit_code: str
    activity_type: str
    candidates: List[CandidateSlot] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.unit_code, self.activity_type)

    @property
    def is_lecture(self) -> bool:
        return is_lecture_type(self.activity_type)

    @property
    def is_virtual(self) -> bool:
        return is_virtual_type(self.activity_type)


@dataclass
class GenerationResult:
    """Outcome of one generation run. Shortfalls are reported here, never raised."""
    success: bool
    classes: List[SelectedClass]
    message: str = ''
    warnings: List[str] = field(default_factory=list)
    has_conflicts_with_unavailability: bool = False
    score: float = float('-inf')
    iterations: int = 0
    time_elapsed_ms: float = 0.0
    is_partial: bool = False

    def to_dict(self):
        return {
            'success': self.success,
            'classes': [c.to_dict() for c in self.classes],
            'message': self.message,
            'warnings': list(self.warnings),
            'hasConflictsWithUnavailability': self.has_conflicts_with_unavailability,
            'score': round(self.score, 2) if math.isfinite(self.score) else None,
            'iterations': self.iterations,
            'timeElapsed': round(self.time_elapsed_ms),
            'isPartial': self.is_partial,
        }


def times_overlap(a: CandidateSlot, b: CandidateSlot) -> bool:
    return a.day == b.day and ranges_overlap(a.start_hour, a.end_hour, b.start_hour, b.end_hour)


def classes_overlap(a: CandidateSlot, b: CandidateSlot) -> bool:
    """Same day, intersecting times, and at least one teaching week in common."""
    return times_overlap(a, b) and bool(a.weeks & b.weeks)


def group_activities(unit_candidates: Dict[str, Optional[Sequence]]) -> Tuple[List[ActivityGroup], List[str]]:
    """
    Group raw per-unit candidates by (unit, activity type).

    Values may be CandidateSlot objects or client dicts. Candidates with no
    activity type are ignored; ones with unusable times are excluded with a
    warning. A unit with no data is skipped with a warning.

    Returns:
        (groups, warnings)
    """
    groups: List[ActivityGroup] = []
    warnings: List[str] = []

    for unit_code, raw_slots in unit_candidates.items():
        if not raw_slots:
            warnings.append(f'No classes found for {unit_code}. This unit will be skipped.')
            continue

        by_type: Dict[str, List[CandidateSlot]] = {}
        for raw in raw_slots:
            if isinstance(raw, CandidateSlot):
                activity_type = raw.activity_type
            else:
                activity_type = (raw.get('activityType') or '').strip()
            if not activity_type:
                continue

            candidates = by_type.setdefault(activity_type, [])
            if isinstance(raw, CandidateSlot):
                candidates.append(raw)
                continue
            try:
                candidates.append(CandidateSlot.from_dict(raw, unit_code))
            except ValueError as e:
                msg = (f"Excluded {unit_code} {activity_type} on {raw.get('dayFormatted') or raw.get('day') or '?'}: "
                       f"invalid class data ({e})")
                if msg not in warnings:
                    warnings.append(msg)

        if not by_type:
            warnings.append(f'No classes found for {unit_code}. This unit will be skipped.')
            continue

        for activity_type, candidates in by_type.items():
            if not candidates:
                warnings.append(f'No {activity_type} classes found for {unit_code}.')
            groups.append(ActivityGroup(unit_code, activity_type, candidates))

    for msg in warnings:
        logger.warning(msg)
    return groups, warnings


class TimetableGenerator:
    """
    Monte Carlo timetable search for a single invocation.

    All bookkeeping (random source, occupied slots, best solution) lives on
    the instance or inside method calls, so separate generators never share
    state.
    """

    def __init__(
        self,
        groups: List[ActivityGroup],
        unavailable: Optional[Iterable[UnavailabilityWindow]] = None,
        existing_classes: Optional[Iterable[SelectedClass]] = None,
        preference: str = 'spread',
        rng: Optional[random.Random] = None,
        max_iterations: int = SIMULATION_ITERATIONS,
        timeout_ms: float = SIMULATION_TIMEOUT_MS,
        fallback_attempts: int = FALLBACK_ATTEMPTS,
        warnings: Optional[List[str]] = None,
    ):
        if preference not in PREFERENCES:
            raise ValueError(f"Unknown day distribution preference: {preference!r}")

        self.groups = list(groups)
        self.unavailable = list(unavailable or [])
        self.existing_classes = list(existing_classes or [])
        self.preference = preference
        self.rng = rng or random.Random()
        self.max_iterations = max_iterations
        self.timeout_ms = timeout_ms
        self.fallback_attempts = fallback_attempts
        self.warnings: List[str] = list(warnings or [])

    def conflicts_with_unavailability(self, slot: CandidateSlot) -> bool:
        return any(window.overlaps(slot) for window in self.unavailable)

    def prioritize_candidates(self, group: ActivityGroup) -> List[CandidateSlot]:
        """
        Order a group's candidates for trial placement.

        In-person before virtual, then unavailability-free before clashing,
        then random. For lectures the unavailability preference only counts
        half, so a clashing lecture still comes first some of the time.
        """
        candidates = list(group.candidates)
        self.rng.shuffle(candidates)

        weight = 0.5 if group.is_lecture else 1.0

        def sort_key(slot: CandidateSlot):
            clash = weight if self.conflicts_with_unavailability(slot) else 0.0
            return (slot.is_virtual, clash + self.rng.random())

        return sorted(candidates, key=sort_key)

    def _clashes(self, slot: CandidateSlot, placed: Sequence[CandidateSlot]) -> bool:
        """Time clash with any placed or pre-existing class, lecture-lecture excepted."""
        for other in list(placed) + self.existing_classes:
            if times_overlap(slot, other) and not (slot.is_lecture and other.is_lecture):
                return True
        return False

    def _already_covered(self, group: ActivityGroup, solution: Sequence[SelectedClass]) -> bool:
        unit_classes = [c for c in solution if c.unit_code == group.unit_code]

        if group.is_lecture or group.is_virtual:
            return any(c.is_lecture or c.is_virtual for c in unit_classes)

        base = base_activity_type(group.activity_type)
        return any(
            c.activity_type.lower() == group.activity_type.lower()
            or base_activity_type(c.activity_type) == base
            for c in unit_classes
        )

    def construct_solution(self) -> List[SelectedClass]:
        """Greedily build one (possibly incomplete) timetable in random group order."""
        solution: List[SelectedClass] = []
        occupied: Set[Tuple[str, str, str]] = {
            c.slot_key for c in self.existing_classes if not c.is_lecture
        }

        order = list(self.groups)
        self.rng.shuffle(order)

        for group in order:
            if not group.candidates or self._already_covered(group, solution):
                continue

            prioritized = self.prioritize_candidates(group)

            added = False
            for slot in prioritized:
                if slot.slot_key in occupied:
                    continue
                if self._clashes(slot, solution):
                    continue
                if not group.is_lecture:
                    occupied.add(slot.slot_key)
                solution.append(SelectedClass.from_candidate(slot))
                added = True
                break

            if added:
                continue

            # Nothing fits cleanly. Lectures always go in; other activities
            # only when the unit has nothing yet.
            top = prioritized[0]
            if group.is_lecture:
                # Flagged only on a real clash with a non-lecture or existing class
                solution.append(SelectedClass.from_candidate(top, has_conflict=self._clashes(top, solution)))
            elif not any(c.unit_code == group.unit_code for c in solution):
                solution.append(SelectedClass.from_candidate(top, has_conflict=True))

        return solution

    def _is_represented(self, group: ActivityGroup, solution: Sequence[SelectedClass]) -> bool:
        base = base_activity_type(group.activity_type)
        return any(
            c.unit_code == group.unit_code
            and (c.activity_type == group.activity_type or base_activity_type(c.activity_type) == base)
            for c in solution
        )

    def missing_groups(self, solution: Sequence[SelectedClass]) -> List[ActivityGroup]:
        return [g for g in self.groups if not self._is_represented(g, solution)]

    def score_solution(self, solution: Sequence[SelectedClass]) -> float:
        """Weighted sum of completeness, conflicts, day distribution and gaps. Higher is better."""
        score = 0.0

        # 1. Completeness
        if self.groups:
            represented = len(self.groups) - len(self.missing_groups(solution))
            score += represented / len(self.groups) * COMPLETENESS_WEIGHT

        # 2. Clashes between selected classes
        conflict_count = 0
        for i, first in enumerate(solution):
            for second in solution[i + 1:]:
                if not classes_overlap(first, second):
                    continue
                if first.is_lecture and second.is_lecture:
                    continue
                if (first.unit_code == second.unit_code
                        and base_activity_type(first.activity_type) == base_activity_type(second.activity_type)):
                    continue
                conflict_count += 1
        score -= conflict_count * CLASS_CONFLICT_PENALTY

        # 3. Clashes with unavailable time
        for cls in solution:
            if self.conflicts_with_unavailability(cls):
                score -= LECTURE_UNAVAILABILITY_PENALTY if cls.is_lecture else UNAVAILABILITY_PENALTY

        # 4. Day distribution
        per_day = {day: 0 for day in WEEKDAYS}
        for cls in solution:
            if cls.day in per_day:
                per_day[cls.day] += 1
        active_days = sum(1 for count in per_day.values() if count > 0)

        if self.preference == 'spread':
            score += active_days * 10
        elif self.preference == 'balanced':
            score += active_days * 5
            score -= statistics.pstdev(list(per_day.values())) * 5
        else:
            score += (len(WEEKDAYS) - active_days) * 10

        # 5. Idle time between classes
        score -= self._total_gap_hours(solution) * GAP_PENALTIES[self.preference]

        return score

    @staticmethod
    def _total_gap_hours(solution: Sequence[SelectedClass]) -> float:
        by_day: Dict[str, List[SelectedClass]] = {}
        for cls in solution:
            by_day.setdefault(cls.day, []).append(cls)

        total = 0.0
        for classes in by_day.values():
            classes.sort(key=lambda c: c.start_hour)
            for prev, cur in zip(classes, classes[1:]):
                gap = cur.start_hour - prev.end_hour
                if gap > 0:
                    total += gap
        return total

    def _best_of(self, attempts: int) -> Tuple[List[SelectedClass], float]:
        best: List[SelectedClass] = []
        best_score = float('-inf')
        for _ in range(attempts):
            solution = self.construct_solution()
            score = self.score_solution(solution)
            if score > best_score:
                best, best_score = solution, score
        return best, best_score

    def generate(self) -> GenerationResult:
        """Run the time-boxed search and describe the best timetable found."""
        best: List[SelectedClass] = []
        best_score = float('-inf')
        iterations = 0

        started = time.monotonic()
        deadline = started + self.timeout_ms / 1000

        while iterations < self.max_iterations and time.monotonic() < deadline:
            solution = self.construct_solution()
            score = self.score_solution(solution)
            if score > best_score:
                best, best_score = solution, score
                logger.debug('Iteration %d: new best score %.2f (%d classes)', iterations, score, len(solution))
            iterations += 1

        elapsed_ms = (time.monotonic() - started) * 1000
        warnings = list(self.warnings)

        if not best:
            return self._fallback_result(warnings, iterations, elapsed_ms)

        has_unavailability_conflicts = self._describe_unavailability_conflicts(best, warnings)

        if any(c.has_conflict for c in best):
            warnings.append('Some classes overlap with each other. This was allowed to include all required classes.')

        missing = self.missing_groups(best)
        complete = not missing
        if not complete:
            warnings.append('Could not include all required classes in the timetable.')
            for group in missing:
                warnings.append(f'Could not schedule {group.activity_type} for {group.unit_code}.')

        logger.info(
            'Timetable search: %d iterations in %.0f ms, best score %.2f, complete=%s',
            iterations, elapsed_ms, best_score, complete,
        )

        return GenerationResult(
            success=complete,
            classes=best,
            message='' if complete else 'Could not include all required classes in the timetable.',
            warnings=warnings,
            has_conflicts_with_unavailability=has_unavailability_conflicts,
            score=best_score,
            iterations=iterations,
            time_elapsed_ms=elapsed_ms,
        )

    def _describe_unavailability_conflicts(self, solution: Sequence[SelectedClass], warnings: List[str]) -> bool:
        clashing = [c for c in solution if self.conflicts_with_unavailability(c)]
        if clashing:
            warnings.append('Some classes had to be scheduled during your unavailable times.')
            for cls in clashing:
                warnings.append(
                    f'{cls.unit_code} {cls.activity_type} on {cls.day} at {cls.start_time} '
                    f'conflicts with your unavailable times.'
                )
        return bool(clashing)

    def _fallback_result(self, warnings: List[str], iterations: int, elapsed_ms: float) -> GenerationResult:
        partial, partial_score = self._best_of(self.fallback_attempts)
        logger.warning('Main search produced no timetable; fallback of %d attempts found %d classes',
                       self.fallback_attempts, len(partial))

        if not partial:
            return GenerationResult(
                success=False,
                classes=[],
                message='Could not generate a timetable: no classes were available for the requested units.',
                warnings=warnings,
                score=partial_score,
                iterations=iterations,
                time_elapsed_ms=elapsed_ms,
                is_partial=True,
            )

        has_unavailability_conflicts = self._describe_unavailability_conflicts(partial, warnings)
        warnings.append('Some classes may conflict with each other or with your unavailable times.')
        warnings.append('Review the timetable carefully and make manual adjustments if needed.')

        return GenerationResult(
            success=False,
            classes=partial,
            message='Could not create a complete timetable. Using best partial solution.',
            warnings=warnings,
            has_conflicts_with_unavailability=has_unavailability_conflicts,
            score=partial_score,
            iterations=iterations,
            time_elapsed_ms=elapsed_ms,
            is_partial=True,
        )


def _as_window(value) -> UnavailabilityWindow:
    return value if isinstance(value, UnavailabilityWindow) else UnavailabilityWindow.from_dict(value)


def _as_selected(value) -> SelectedClass:
    return value if isinstance(value, SelectedClass) else SelectedClass.from_dict(value)


def generate(
    unit_candidates: Dict[str, Optional[Sequence]],
    unavailability: Optional[Iterable] = None,
    existing_classes: Optional[Iterable] = None,
    preference: str = 'spread',
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    max_iterations: int = SIMULATION_ITERATIONS,
    timeout_ms: float = SIMULATION_TIMEOUT_MS,
    fallback_attempts: int = FALLBACK_ATTEMPTS,
) -> GenerationResult:
    """
    Generate a timetable in one call.

    Args:
        unit_candidates: unit code -> candidate slots (CandidateSlot or dicts);
            an empty list or None means no data was available for that unit
        unavailability: UnavailabilityWindow objects or {day, startHour, endHour} dicts
        existing_classes: classes already on the user's timetable, kept clear of
        preference: 'spread', 'balanced' or 'compact'
        rng / seed: random source for deterministic replay

    Raises:
        ValueError: malformed unavailability, existing classes or preference
    """
    if rng is None:
        rng = random.Random(seed)

    windows = merge_unavailability_windows(_as_window(w) for w in (unavailability or []))
    existing = [_as_selected(c) for c in (existing_classes or [])]

    groups, warnings = group_activities(unit_candidates)

    generator = TimetableGenerator(
        groups,
        unavailable=windows,
        existing_classes=existing,
        preference=preference,
        rng=rng,
        max_iterations=max_iterations,
        timeout_ms=timeout_ms,
        fallback_attempts=fallback_attempts,
        warnings=warnings,
    )
    return generator.generate()


def apply_generated_classes(
    existing: Sequence[SelectedClass],
    generated: Sequence[SelectedClass],
) -> Tuple[List[SelectedClass], List[SelectedClass]]:
    """
    Merge a generated timetable into the user's existing classes.

    Keeps one generated class per (unit, activity type), the last one wins,
    and drops existing classes for the same (unit, activity type).

    Returns:
        (merged timetable, classes that were added)
    """
    latest: Dict[Tuple[str, str], SelectedClass] = {}
    for cls in generated:
        latest[(cls.unit_code, cls.activity_type)] = cls

    merged = [c for c in existing if (c.unit_code, c.activity_type) not in latest]
    seen_ids = {c.id for c in merged}

    added = []
    for cls in latest.values():
        if cls.id in seen_ids:
            continue
        seen_ids.add(cls.id)
        added.append(cls)

    return merged + added, added
