"""
Interactive creature evolution: a pygame window onto the running simulation.

Keys:
  SPACE  start / pause          R      reset (new random population)
  + / -  speed x2 / /2          ] / [  next generation size +5 / -5
  E      export best DNA        TAB    debug overlay
"""

from __future__ import annotations
import argparse
import logging
import random
from typing import List, Optional

import pygame

import config
from organism.events import EventLog
from organism.interchange import DnaImportError, import_genome
from render import colors
from render.renderer import draw_creature, draw_event_log, draw_hud, draw_obstacles, draw_power_ups
from simulation import Simulation

logger = logging.getLogger(__name__)

SPEED_UP_KEYS = (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS)
SPEED_DOWN_KEYS = (pygame.K_MINUS, pygame.K_KP_MINUS)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Evolving physics creatures in a 2D arena",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for a reproducible run")
    parser.add_argument("--population", type=int, default=config.POPULATION_SIZE, help="Creatures per generation (5-50)")
    parser.add_argument("--speed", type=float, default=1.0, help="Simulation speed multiplier (0.5-1000)")
    parser.add_argument("--import", dest="import_path", default=None, help="Seed the population from a DNA JSON file")
    parser.add_argument("--export-dir", default=".", help="Where exported DNA files are written")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def handle_key(key: int, sim: Simulation, events: EventLog, export_dir: str) -> None:
    if key == pygame.K_SPACE:
        if sim.running:
            sim.pause()
        else:
            sim.start()
    elif key == pygame.K_r:
        sim.reset()
        events.add("reset", "Simulation reset", sim.total_time)
    elif key in SPEED_UP_KEYS:
        sim.set_speed(sim.speed * 2)
    elif key in SPEED_DOWN_KEYS:
        sim.set_speed(sim.speed / 2)
    elif key == pygame.K_RIGHTBRACKET:
        sim.set_population_size(sim.target_population + 5)
    elif key == pygame.K_LEFTBRACKET:
        sim.set_population_size(sim.target_population - 5)
    elif key == pygame.K_e:
        path = sim.export_best(export_dir)
        if path is None:
            events.add("export", "Nothing to export yet", sim.total_time)
        else:
            events.add("export", f"Exported best DNA to {path}", sim.total_time)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    rng = random.Random(args.seed) if args.seed is not None else None
    events = EventLog()
    sim = Simulation(config.SCREEN_W, config.SCREEN_H, args.population, rng=rng, events=events)
    sim.set_speed(args.speed)

    if args.import_path:
        try:
            sim.import_dna(import_genome(args.import_path))
            events.add("import", f"Seeded population from {args.import_path}", sim.total_time)
        except DnaImportError as exc:
            logger.error("DNA import failed: %s", exc)
            events.add("error", f"Import failed: {exc}", sim.total_time)

    pygame.init()
    screen = pygame.display.set_mode((config.SCREEN_W, config.SCREEN_H))
    pygame.display.set_caption("creature_evolution")
    clock = pygame.time.Clock()

    debug = False
    running = True

    while running:
        elapsed = clock.tick(60) / 1000.0

        for e in pygame.event.get():
            if e.type == pygame.QUIT:
                running = False
            elif e.type == pygame.KEYDOWN:
                if e.key == pygame.K_ESCAPE:
                    running = False
                elif e.key == pygame.K_TAB:
                    debug = not debug
                else:
                    handle_key(e.key, sim, events, args.export_dir)

        sim.tick(elapsed)

        # Render
        screen.fill(colors.BG)
        draw_obstacles(screen, sim.world.obstacles)
        draw_power_ups(screen, sim.world.power_ups.power_ups)
        for creature in sim.creatures:
            draw_creature(screen, creature, debug=debug)

        draw_hud(screen, sim.stats(), sim.speed, sim.running, sim.target_population)
        draw_event_log(screen, events.recent(6))

        pygame.display.flip()

    pygame.quit()


if __name__ == "__main__":
    main()
