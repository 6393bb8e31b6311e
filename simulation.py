"""
creature_evolution module: simulation.py

Runs the arena frame by frame:
- splits each (capped) frame into physics sub-steps, scaled by the speed knob
- keeps sensors, power-ups and corpses up to date
- lets creatures breed mid-generation
- ends a generation when only a couple of creatures are left alive,
  keeping the best survivors on screen and spawning the next generation

The simulation never touches the screen, main.py drives it and renders.
"""

from __future__ import annotations
import logging
import math
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import config
from evolution.manager import EvolutionManager, clamp_population_size
from evolution.reproduction import breed, find_mating_pairs, spawn_point
from evolution.selection import select_elites
from organism.creature import Creature
from organism.events import EventSink, NullEventSink
from organism.genome import Genome
from organism.interchange import export_genome, genome_from_dict, loads_genome
from world.world import World

logger = logging.getLogger(__name__)


@dataclass
class SimulationStats:
    generation: int
    total_time: float
    living: int
    best_fitness: float
    avg_fitness: float
    oldest_id: Optional[int] = None
    oldest_age: float = 0.0


class Simulation:
    def __init__(
        self,
        w: int = config.SCREEN_W,
        h: int = config.SCREEN_H,
        population_size: int = config.POPULATION_SIZE,
        rng=None,
        events: Optional[EventSink] = None,
    ):
        self.w = w
        self.h = h
        self.rng = rng or random
        self.events = events or NullEventSink()

        self.world = World(w, h, rng=self.rng, events=self.events)
        self.target_population = clamp_population_size(population_size)
        self.evolution = EvolutionManager(population_size=self.target_population, rng=self.rng)

        self.creatures: List[Creature] = []
        self.running = False
        self.speed = 1.0
        self.total_time = 0.0
        self.next_creature_id = 0

        self.init_generation()

    # ---- population ----

    def living(self) -> List[Creature]:
        return [c for c in self.creatures if c.is_alive]

    def random_spawn_position(self):
        margin = config.SPAWN_MARGIN
        x = margin + self.rng.random() * max(0.0, self.w - margin * 2)
        y = margin + self.rng.random() * max(0.0, self.h - margin * 2)
        return x, y

    def spawn_creature(self, dna: Genome, x: float, y: float) -> Creature:
        creature = Creature(dna, self.world.physics, x, y, self.next_creature_id, events=self.events)
        self.next_creature_id += 1
        self.world.register_creature(creature)
        self.creatures.append(creature)
        return creature

    def remove_creature(self, creature: Creature) -> None:
        self.world.unregister_creature(creature)
        creature.destroy()
        if creature in self.creatures:
            self.creatures.remove(creature)

    def _refresh_arena(self) -> None:
        self.world.power_ups.reset()
        lo, hi = config.OBSTACLE_COUNT_RANGE
        self.world.create_obstacles(lo + int(self.rng.random() * (hi - lo + 1)))

    def init_generation(self) -> None:
        """Fresh arena: every genome in the population gets a new creature."""
        self.world.clear_creatures()
        self.creatures = []
        self._refresh_arena()

        if not self.evolution.population:
            self.evolution.initialize_population()

        for dna in self.evolution.population:
            x, y = self.random_spawn_position()
            self.spawn_creature(dna, x, y)
        logger.info(
            "Generation %d: spawned %d creatures", self.evolution.generation, len(self.creatures)
        )

    # ---- frame loop ----

    def tick(self, elapsed: float) -> None:
        if not self.running:
            return
        self.advance(elapsed)

    def advance(self, elapsed: float) -> None:
        """One frame of ``elapsed`` wall-clock seconds, whether running or not."""
        capped = min(max(elapsed, 0.0), config.MAX_FRAME_SECONDS)
        total = capped * self.speed
        if total <= 0:
            return

        steps = max(math.ceil(self.speed), math.ceil(total / config.MAX_SUBSTEP_SECONDS))
        sub = total / steps

        for s in range(steps):
            if s == 0:
                self.refresh_visibility()
                self.update_power_ups()
                self.evict_faded()
            self.world.update(sub)
            self.total_time += sub
            self.drop_untracked()

        self.check_reproduction()
        if len(self.living()) <= config.GENERATION_END_LIVING:
            self.end_generation()
        self.events.on_stats(self.stats())

    def refresh_visibility(self) -> None:
        for creature in self.creatures:
            if creature.is_alive:
                creature.set_others(self.creatures)

    def update_power_ups(self) -> None:
        field = self.world.power_ups
        field.replenish()
        field.update(self.creatures)
        self.world.apply_gripper_attraction(field.power_ups)

    def evict_faded(self) -> int:
        faded = [c for c in self.creatures if c.can_destroy]
        for creature in faded:
            self.remove_creature(creature)
        return len(faded)

    def drop_untracked(self) -> int:
        """Forget creatures the world let go of (failed updates, engine recovery)."""
        gone = [c for c in self.creatures if c.can_destroy or not c.in_world()]
        for creature in gone:
            self.remove_creature(creature)
        if gone:
            logger.debug("Dropped %d creature(s) no longer in the world", len(gone))
        return len(gone)

    # ---- evolution ----

    def check_reproduction(self) -> List[Creature]:
        children: List[Creature] = []
        for first, second in find_mating_pairs(self.creatures, self.total_time):
            dna = breed(first.dna, second.dna, self.evolution.generation, self.rng)
            x, y = spawn_point(first.center_position(), second.center_position(), self.w, self.h, self.rng)
            child = self.spawn_creature(dna, x, y)

            first.last_reproduction_time = self.total_time
            second.last_reproduction_time = self.total_time
            self.events.on_birth(child, (first, second))
            children.append(child)
        return children

    def end_generation(self) -> None:
        """
        Score everyone, keep up to two living elites (body, id and age intact),
        breed the next population and spawn it around them.
        """
        self.evolution.update_fitness(self.creatures)
        elites = select_elites(self.creatures, config.SURVIVING_ELITES)

        for creature in list(self.creatures):
            if not any(creature is e for e in elites):
                self.remove_creature(creature)
        self.creatures = list(elites)

        self.evolution.evolve_next_generation()

        claimed: List[Genome] = []
        for creature in elites:
            new_dna = self.evolution.elite_clone_of(creature.dna)
            if new_dna is None or any(new_dna is g for g in claimed):
                new_dna = self.evolution.adopt_survivor(creature.dna)
            creature.dna = new_dna
            claimed.append(new_dna)

        self._refresh_arena()
        for dna in self.evolution.population:
            if any(dna is g for g in claimed):
                continue
            x, y = self.random_spawn_position()
            self.spawn_creature(dna, x, y)

        logger.info(
            "Generation %d: %d elite(s) carried over, %d creatures alive",
            self.evolution.generation, len(elites), len(self.living()),
        )

    # ---- controls ----

    def start(self) -> None:
        self.running = True

    def pause(self) -> None:
        self.running = False

    def reset(self) -> None:
        self.pause()
        self.evolution = EvolutionManager(population_size=self.target_population, rng=self.rng)
        self.next_creature_id = 0
        self.init_generation()

    def set_speed(self, speed: float) -> float:
        lo, hi = config.SPEED_RANGE
        self.speed = max(lo, min(hi, speed))
        return self.speed

    def set_population_size(self, size: int) -> int:
        """Takes effect when the next generation is bred."""
        self.target_population = self.evolution.set_population_size(size)
        return self.target_population

    def best_creature(self) -> Optional[Creature]:
        if not self.creatures:
            return None
        return max(self.creatures, key=lambda c: c.calculate_fitness())

    def export_best(self, directory: Union[str, Path]) -> Optional[Path]:
        best = self.best_creature()
        if best is None:
            return None
        dna = best.dna.clone()
        dna.fitness = best.calculate_fitness()
        return export_genome(dna, directory)

    def import_dna(self, document: Union[str, Dict[str, Any], Genome]) -> Genome:
        """
        Seed a new population from a DNA document and restart.
        The document is fully validated before anything is changed.
        """
        if isinstance(document, Genome):
            genome = document.clone()
        elif isinstance(document, str):
            genome = loads_genome(document)
        else:
            genome = genome_from_dict(document)

        self.pause()
        self.evolution.seed_from(genome)
        self.init_generation()
        self.start()
        logger.info("Imported DNA (generation %d), population reseeded", genome.generation)
        return genome

    def stats(self) -> SimulationStats:
        alive = self.living()
        oldest = max(alive, key=lambda c: c.age) if alive else None
        evo = self.evolution.stats()
        return SimulationStats(
            generation=evo.generation,
            total_time=self.total_time,
            living=len(alive),
            best_fitness=evo.best_fitness,
            avg_fitness=evo.avg_fitness,
            oldest_id=oldest.id if oldest is not None else None,
            oldest_age=oldest.age if oldest is not None else 0.0,
        )
