"""
Mid-generation reproduction: two healthy, mature creatures that meet get a child.
"""

from __future__ import annotations
import math
import random
from typing import TYPE_CHECKING, List, Sequence, Tuple

import config
from evolution.mutate import crossover_dna, mutate_dna
from organism.genome import Genome

if TYPE_CHECKING:
    from organism.creature import Creature


def can_reproduce(creature: "Creature", now: float) -> bool:
    return (
        creature.is_alive
        and creature.age >= config.REPRO_MIN_AGE
        and creature.food >= config.REPRO_MIN_FOOD
        and creature.health >= config.REPRO_MIN_HEALTH
        and now - creature.last_reproduction_time >= config.REPRO_COOLDOWN
    )


def find_mating_pairs(
    creatures: Sequence["Creature"],
    now: float,
    max_population: int = config.MAX_POP,
    distance: float = config.REPRO_DISTANCE,
) -> List[Tuple["Creature", "Creature"]]:
    """
    Pair up eligible creatures whose centres are closer than ``distance``.
    Each creature appears in at most one pair, and births stop once the
    living count plus pending births reaches ``max_population``.
    """
    alive = [c for c in creatures if c.is_alive]
    pairs: List[Tuple["Creature", "Creature"]] = []
    paired = set()

    for i, first in enumerate(alive):
        if len(alive) + len(pairs) >= max_population:
            break
        if first.id in paired or not can_reproduce(first, now):
            continue
        fx, fy = first.center_position()
        for second in alive[i + 1:]:
            if second.id in paired or not can_reproduce(second, now):
                continue
            sx, sy = second.center_position()
            if math.hypot(sx - fx, sy - fy) < distance:
                pairs.append((first, second))
                paired.add(first.id)
                paired.add(second.id)
                break
    return pairs


def breed(dna_a: Genome, dna_b: Genome, generation: int, rng=None) -> Genome:
    child = mutate_dna(crossover_dna(dna_a, dna_b, rng), config.REPRO_MUTATION_RATE, rng)
    child.generation = generation
    child.fitness = 0.0
    return child


def spawn_point(
    pos_a: Tuple[float, float],
    pos_b: Tuple[float, float],
    w: float,
    h: float,
    rng=None,
) -> Tuple[float, float]:
    """Midpoint of the parents, jittered, kept away from the walls."""
    rng = rng or random
    jitter = config.CHILD_SPAWN_JITTER
    margin = config.CHILD_SPAWN_MARGIN
    x = (pos_a[0] + pos_b[0]) / 2 + (rng.random() - 0.5) * jitter
    y = (pos_a[1] + pos_b[1]) / 2 + (rng.random() - 0.5) * jitter
    return (max(margin, min(w - margin, x)), max(margin, min(h - margin, y)))
