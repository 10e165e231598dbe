"""Easing curves mapping linear progress to shaped progress."""

from __future__ import annotations

import math
from enum import StrEnum


class Easing(StrEnum):
    LINEAR = "linear"
    EASE_IN = "ease-in"
    EASE_OUT = "ease-out"
    EASE_IN_OUT = "ease-in-out"
    BOUNCE = "bounce"
    ELASTIC = "elastic"


_BACK_C1 = 1.70158
_BACK_C3 = _BACK_C1 + 1
_ELASTIC_C4 = (2 * math.pi) / 3


def linear(p: float) -> float:
    return p


def ease_in(p: float) -> float:
    return p * p


def ease_out(p: float) -> float:
    return 1 - (1 - p) * (1 - p)


def ease_in_out(p: float) -> float:
    if p < 0.5:
        return 2 * p * p
    return 1 - math.pow(-2 * p + 2, 2) / 2


def bounce(p: float) -> float:
    # Back-in curve: dips below zero before accelerating to 1.
    # c3 - c1 is not exactly 1.0 in binary floating point.
    if p == 1:
        return 1.0
    return _BACK_C3 * p * p * p - _BACK_C1 * p * p


def elastic(p: float) -> float:
    if p == 0:
        return 0.0
    if p == 1:
        return 1.0
    return math.pow(2, -10 * p) * math.sin((p * 10 - 0.75) * _ELASTIC_C4) + 1


EASING_FUNCTIONS = {
    Easing.LINEAR: linear,
    Easing.EASE_IN: ease_in,
    Easing.EASE_OUT: ease_out,
    Easing.EASE_IN_OUT: ease_in_out,
    Easing.BOUNCE: bounce,
    Easing.ELASTIC: elastic,
}


def apply_easing(progress: float, easing: Easing | str) -> float:
    """Return eased progress; unknown easing names fall back to linear."""
    try:
        function = EASING_FUNCTIONS[Easing(easing)]
    except ValueError:
        return progress
    return function(progress)
