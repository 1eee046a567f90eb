"""Human readable descriptions of how a candidate value differs from the control."""

from collections.abc import Mapping, Sequence
from typing import Any, List, Tuple

from scientist.utils.logger import summarize_value

MAX_SAMPLES = 10


def compare_strings(control: str, candidate: str) -> Tuple[bool, int, str]:
    """
    Compare two strings character by character.

    Args:
        control: Control string
        candidate: Candidate string

    Returns:
        Tuple of (match: bool, diff_count: int, details: str)
    """
    if control == candidate:
        return True, 0, ""

    diff_count = 0
    diff_positions: List[str] = []

    for i, (control_char, candidate_char) in enumerate(zip(control, candidate)):
        if control_char != candidate_char:
            diff_count += 1
            if len(diff_positions) < MAX_SAMPLES:
                diff_positions.append(f"pos{i}: {control_char!r} -> {candidate_char!r}")

    if len(control) != len(candidate):
        diff_count += abs(len(control) - len(candidate))
        diff_positions.append(f"length: {len(control)} -> {len(candidate)}")

    details = f"{diff_count} chars differ: {', '.join(diff_positions)}"
    return False, diff_count, details


def compare_mappings(control: Mapping, candidate: Mapping) -> Tuple[bool, str]:
    """
    Compare two mappings key by key.

    Returns:
        Tuple of (match: bool, details: str)
    """
    if control == candidate:
        return True, ""

    mismatches = []
    # Keep control key order, then keys only the candidate has
    keys = list(control.keys()) + [k for k in candidate.keys() if k not in control]

    for key in keys:
        if key not in candidate:
            mismatches.append(f"{key}: missing in candidate")
        elif key not in control:
            mismatches.append(f"{key}: unexpected in candidate")
        elif control[key] != candidate[key]:
            mismatches.append(
                f"{key}: {summarize_value(control[key], 40)} -> "
                f"{summarize_value(candidate[key], 40)}"
            )

    return False, f"keys differ: {', '.join(mismatches[:MAX_SAMPLES])}"


def compare_sequences(control: Sequence, candidate: Sequence) -> Tuple[bool, str]:
    """
    Compare two sequences element by element.

    Returns:
        Tuple of (match: bool, details: str)
    """
    if list(control) == list(candidate):
        return True, ""

    mismatches = []
    for index, (control_item, candidate_item) in enumerate(zip(control, candidate)):
        if control_item != candidate_item:
            mismatches.append(
                f"[{index}]: {summarize_value(control_item, 40)} -> "
                f"{summarize_value(candidate_item, 40)}"
            )

    if len(control) != len(candidate):
        mismatches.append(f"length: {len(control)} -> {len(candidate)}")

    return False, f"items differ: {', '.join(mismatches[:MAX_SAMPLES])}"


def describe_difference(control: Any, candidate: Any) -> str:
    """
    Describe how ``candidate`` differs from ``control``.

    Strings are compared per character, mappings per key, other sequences
    per element. Anything else falls back to comparing reprs.

    Returns:
        Empty string when the values are equal, otherwise a description
    """
    if isinstance(control, str) and isinstance(candidate, str):
        return compare_strings(control, candidate)[2]

    if isinstance(control, Mapping) and isinstance(candidate, Mapping):
        return compare_mappings(control, candidate)[1]

    if (
        isinstance(control, Sequence)
        and isinstance(candidate, Sequence)
        and not isinstance(control, (str, bytes))
        and not isinstance(candidate, (str, bytes))
    ):
        return compare_sequences(control, candidate)[1]

    if control == candidate:
        return ""

    if type(control) is not type(candidate):
        return (
            f"type: {type(control).__name__} -> {type(candidate).__name__} "
            f"({summarize_value(control, 40)} -> {summarize_value(candidate, 40)})"
        )
    return f"{summarize_value(control, 80)} -> {summarize_value(candidate, 80)}"
