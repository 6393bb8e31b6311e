"""
creature_evolution module: evolution/manager.py

Generation bookkeeping for the genetic algorithm:
- population of genomes + per-generation fitness history
- elitism (top genomes cloned into the next generation)
- tournament selection, crossover and mutation for the rest

Elite creatures stay alive across generations. The manager remembers which
new genome each elite genome became (elite_sources) so the simulation can
hand the survivors their new genome.
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Set, Tuple

import config
from evolution.mutate import crossover_dna, mutate_dna
from evolution.selection import sort_by_fitness, tournament_select
from organism.genome import Genome, generate_random_dna

if TYPE_CHECKING:
    from organism.creature import Creature

logger = logging.getLogger(__name__)


@dataclass
class FitnessRecord:
    generation: int
    best: float
    avg: float


@dataclass
class EvolutionStats:
    generation: int
    population_size: int
    best_fitness: float
    avg_fitness: float
    history: List[FitnessRecord] = field(default_factory=list)


def clamp_population_size(size: int) -> int:
    lo, hi = config.POPULATION_RANGE
    return int(max(lo, min(hi, size)))


class EvolutionManager:
    def __init__(
        self,
        population_size: int = config.POPULATION_SIZE,
        elite_count: int = config.ELITE_COUNT,
        mutation_rate: float = config.MUTATION_RATE,
        crossover_rate: float = config.CROSSOVER_RATE,
        rng=None,
    ):
        self.population_size = population_size
        self.elite_count = elite_count
        self.mutation_rate = mutation_rate
        self.crossover_rate = crossover_rate
        self.rng = rng or random

        self.generation = 0
        self.population: List[Genome] = []
        self.best_fitness = 0.0
        self.avg_fitness = 0.0
        self.history: List[FitnessRecord] = []

        self.elite_sources: List[Tuple[Genome, Genome]] = []
        self._adopted_slots: Set[int] = set()

    def initialize_population(self, n: Optional[int] = None) -> List[Genome]:
        count = self.population_size if n is None else n
        self.population = [generate_random_dna(self.rng) for _ in range(count)]
        self.generation = 0
        self.elite_sources = []
        self._adopted_slots = set()
        return self.population

    def contains(self, genome: Genome) -> bool:
        return any(g is genome for g in self.population)

    def update_fitness(self, creatures: Iterable["Creature"]) -> None:
        for creature in creatures:
            creature.dna.fitness = creature.calculate_fitness()
            if not self.contains(creature.dna):
                logger.debug("Genome of creature #%d is not in the population", creature.id)

        fitnesses = [g.fitness for g in self.population]
        if fitnesses:
            self.best_fitness = max(fitnesses)
            self.avg_fitness = sum(fitnesses) / len(fitnesses)
        else:
            self.best_fitness = 0.0
            self.avg_fitness = 0.0

        self.history.append(
            FitnessRecord(generation=self.generation, best=self.best_fitness, avg=self.avg_fitness)
        )

    def select_parent(self, ranked: List[Genome]) -> Genome:
        return tournament_select(ranked, self.rng)

    def evolve_next_generation(self) -> List[Genome]:
        ranked = sort_by_fitness(self.population)
        next_gen = self.generation + 1

        new_population: List[Genome] = []
        self.elite_sources = []
        for old in ranked[: min(self.elite_count, self.population_size)]:
            elite = old.clone()
            elite.generation = next_gen
            elite.fitness = 0.0
            new_population.append(elite)
            self.elite_sources.append((old, elite))

        while len(new_population) < self.population_size:
            if len(ranked) >= 2 and self.rng.random() < self.crossover_rate:
                child = crossover_dna(self.select_parent(ranked), self.select_parent(ranked), self.rng)
            elif ranked:
                child = self.select_parent(ranked).clone()
            else:
                child = generate_random_dna(self.rng)

            child = mutate_dna(child, self.mutation_rate, self.rng)
            child.generation = next_gen
            child.fitness = 0.0
            new_population.append(child)

        self.population = new_population
        self.generation = next_gen
        self._adopted_slots = set()
        logger.info(
            "Generation %d bred (%d genomes, best fitness was %.1f)",
            self.generation, len(self.population), ranked[0].fitness if ranked else 0.0,
        )
        return self.population

    def elite_clone_of(self, genome: Genome) -> Optional[Genome]:
        for old, new in self.elite_sources:
            if old is genome:
                return new
        return None

    def adopt_survivor(self, genome: Genome) -> Genome:
        """
        Bring a surviving creature's genome into the new population.

        The clone takes the last offspring slot not already claimed by an
        elite or an earlier survivor, so the population size never changes.
        """
        clone = genome.clone()
        clone.generation = self.generation
        clone.fitness = 0.0

        claimed = {id(new) for _, new in self.elite_sources}
        for slot in range(len(self.population) - 1, -1, -1):
            if slot in self._adopted_slots or id(self.population[slot]) in claimed:
                continue
            self.population[slot] = clone
            self._adopted_slots.add(slot)
            return clone

        logger.debug("No free slot for survivor genome, growing population")
        self.population.append(clone)
        self._adopted_slots.add(len(self.population) - 1)
        return clone

    def seed_from(self, genome: Genome, mutation_rate: float = config.IMPORT_MUTATION_RATE) -> List[Genome]:
        """Population = the given genome plus mutated copies of it."""
        self.population = [genome] + [
            mutate_dna(genome, mutation_rate, self.rng) for _ in range(self.population_size - 1)
        ]
        self.generation = genome.generation
        self.elite_sources = []
        self._adopted_slots = set()
        return self.population

    def stats(self) -> EvolutionStats:
        return EvolutionStats(
            generation=self.generation,
            population_size=len(self.population),
            best_fitness=self.best_fitness,
            avg_fitness=self.avg_fitness,
            history=list(self.history),
        )

    def set_population_size(self, size: int) -> int:
        self.population_size = clamp_population_size(size)
        return self.population_size
