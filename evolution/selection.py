"""
creature_evolution module: evolution/selection.py

Selection helpers.
"""

from __future__ import annotations
import random
from typing import TYPE_CHECKING, List, Sequence

import config
from organism.genome import Genome

if TYPE_CHECKING:
    from organism.creature import Creature


def sort_by_fitness(population: Sequence[Genome]) -> List[Genome]:
    # sorted() is stable, equal fitness keeps population order
    return sorted(population, key=lambda g: g.fitness, reverse=True)


def tournament_select(
    population: Sequence[Genome],
    rng=None,
    size: int = config.TOURNAMENT_SIZE,
) -> Genome:
    """
    Draw ``size`` genomes with replacement and return the fittest.
    On a tie the first one drawn wins.
    """
    if not population:
        raise ValueError("Cannot select a parent from an empty population")
    rng = rng or random

    rounds = min(size, len(population))
    best = None
    for _ in range(rounds):
        candidate = population[int(rng.random() * len(population))]
        if best is None or candidate.fitness > best.fitness:
            best = candidate
    return best


def select_elites(creatures: Sequence["Creature"], k: int) -> List["Creature"]:
    alive = [c for c in creatures if c.is_alive]
    return sorted(alive, key=lambda c: c.dna.fitness, reverse=True)[:k]
