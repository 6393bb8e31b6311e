"""Frame pacing, generation turnover, import/export and the keyboard controls."""

import json
import random

import pygame
import pytest

import config
from main import handle_key, parse_args
from organism.events import EventLog
from organism.interchange import DnaImportError, genome_to_dict
from simulation import Simulation
from world.physics import PhysicsError


@pytest.fixture
def sim(sink):
    return Simulation(800, 600, population_size=6, rng=random.Random(11), events=sink)


@pytest.fixture
def empty_sim(sim):
    sim.world.clear_creatures()
    sim.creatures = []
    return sim


def record_steps(sim, monkeypatch):
    seen = []
    monkeypatch.setattr(sim.world, "update", seen.append)
    return seen


class TestSetup:
    def test_first_generation_is_spawned(self, sim):
        assert len(sim.creatures) == 6
        assert len(sim.world.creatures) == 6
        assert [c.id for c in sim.creatures] == list(range(6))
        assert [c.dna for c in sim.creatures] == sim.evolution.population
        assert not sim.running
        assert len(sim.world.power_ups.power_ups) == config.MAX_POWER_UPS

    def test_population_size_is_clamped(self, sink):
        s = Simulation(800, 600, population_size=500, rng=random.Random(1), events=sink)
        assert s.target_population == 50


class TestFrames:
    def test_tick_does_nothing_while_paused(self, sim):
        sim.tick(0.05)
        assert sim.total_time == 0

    def test_advance_splits_into_substeps(self, sim, monkeypatch):
        seen = record_steps(sim, monkeypatch)
        sim.advance(0.05)
        assert len(seen) == 2
        assert seen == pytest.approx([0.025, 0.025])
        assert sim.total_time == pytest.approx(0.05)

    def test_speed_adds_substeps(self, sim, monkeypatch):
        seen = record_steps(sim, monkeypatch)
        sim.set_speed(4.0)
        sim.advance(0.01)
        assert len(seen) == 4
        assert sim.total_time == pytest.approx(0.04)

    def test_long_frames_are_capped(self, sim, monkeypatch):
        record_steps(sim, monkeypatch)
        sim.advance(5.0)
        assert sim.total_time == pytest.approx(config.MAX_FRAME_SECONDS)

    def test_negative_elapsed_is_ignored(self, sim, monkeypatch):
        seen = record_steps(sim, monkeypatch)
        sim.advance(-1.0)
        assert seen == []
        assert sim.total_time == 0

    def test_running_tick_advances_and_reports(self, sim, sink):
        sim.start()
        sim.tick(1 / 60)
        assert sim.total_time == pytest.approx(1 / 60)
        assert sink.stats[-1].total_time == pytest.approx(1 / 60)
        assert all(c.age > 0 for c in sim.living())

    def test_set_speed_clamps(self, sim):
        assert sim.set_speed(0.1) == 0.5
        assert sim.set_speed(5000) == 1000.0
        assert sim.set_speed(8) == 8

    def test_set_population_size_waits_for_next_generation(self, sim):
        assert sim.set_population_size(100) == 50
        assert len(sim.creatures) == 6
        assert sim.set_population_size(8) == 8
        sim.end_generation()
        assert len(sim.creatures) == 8


class TestReproduction:
    def test_close_mature_creatures_breed(self, empty_sim, make_genome, sink):
        a = empty_sim.spawn_creature(make_genome(), 400, 300)
        b = empty_sim.spawn_creature(make_genome(), 450, 300)
        for c in (a, b):
            c.age, c.food, c.health = 40.0, 60.0, 60.0
        empty_sim.total_time = 100.0

        children = empty_sim.check_reproduction()
        assert len(children) == 1
        child = children[0]
        assert child.start_position[0] == pytest.approx(425, abs=20)
        assert child.start_position[1] == pytest.approx(300, abs=20)
        assert a.last_reproduction_time == b.last_reproduction_time == 100.0
        assert child in empty_sim.creatures
        assert sink.births == [(child, (a, b))]

        # cooling down now
        assert empty_sim.check_reproduction() == []

    def test_immature_creatures_do_not_breed(self, empty_sim, make_genome):
        empty_sim.spawn_creature(make_genome(), 400, 300)
        empty_sim.spawn_creature(make_genome(), 450, 300)
        empty_sim.total_time = 100.0
        assert empty_sim.check_reproduction() == []

    def test_creatures_lost_to_a_failed_step_cannot_breed(self, empty_sim, make_genome, sink, monkeypatch):
        a = empty_sim.spawn_creature(make_genome(), 400, 300)
        b = empty_sim.spawn_creature(make_genome(), 430, 300)
        for c in (a, b):
            c.age, c.food, c.health = 40.0, 60.0, 60.0
        empty_sim.total_time = 100.0

        def broken_step(dt):
            raise PhysicsError("constraint references a removed body")

        monkeypatch.setattr(empty_sim.world.physics, "step", broken_step)
        empty_sim.advance(0.02)

        assert sink.births == []
        assert a.last_reproduction_time == b.last_reproduction_time == 0.0
        assert a not in empty_sim.creatures and b not in empty_sim.creatures
        assert all(c.in_world() for c in empty_sim.creatures)

    def test_birth_lands_in_event_log(self, make_genome):
        log = EventLog()
        s = Simulation(800, 600, population_size=5, rng=random.Random(2), events=log)
        s.world.clear_creatures()
        s.creatures = []
        a = s.spawn_creature(make_genome(), 400, 300)
        b = s.spawn_creature(make_genome(), 420, 300)
        for c in (a, b):
            c.age, c.food, c.health = 40.0, 60.0, 60.0
        s.total_time = 100.0
        s.check_reproduction()
        assert log.recent(1)[0].kind == "birth"
        assert f"#{a.id}" in log.recent(1)[0].message


class TestGenerations:
    def test_elites_survive_with_body_and_id(self, sim):
        best, runner_up = sim.creatures[3], sim.creatures[4]
        best.kills, runner_up.kills = 2, 1
        best.age = 50.0
        losers = [c for c in sim.creatures if c not in (best, runner_up)]

        sim.end_generation()

        assert sim.evolution.generation == 1
        assert len(sim.creatures) == 6
        assert best in sim.creatures and runner_up in sim.creatures
        assert best.age == 50.0
        assert best.dna is sim.evolution.population[0]
        assert runner_up.dna is sim.evolution.population[1]
        assert {id(c.dna) for c in sim.creatures} == {id(g) for g in sim.evolution.population}
        assert not any(c.in_world() for c in losers)
        assert set(sim.world.creatures) == {c.id for c in sim.creatures}

    def test_generation_ends_when_few_are_left(self, sim, monkeypatch):
        record_steps(sim, monkeypatch)
        for c in sim.creatures[2:]:
            c.die()
        sim.advance(0.02)
        assert sim.evolution.generation == 1
        assert len(sim.living()) == 6

    def test_dead_elites_are_not_kept(self, sim):
        for c in sim.creatures[:5]:
            c.die()
        survivor = sim.creatures[5]
        sim.end_generation()
        assert survivor in sim.creatures
        assert len(sim.creatures) == 6

    def test_faded_corpses_are_evicted(self, sim):
        corpse = sim.creatures[0]
        corpse.die()
        corpse.can_destroy = True
        assert sim.evict_faded() == 1
        assert corpse not in sim.creatures
        assert corpse.id not in sim.world.creatures

    def test_creatures_the_world_dropped_are_forgotten(self, sim):
        evicted, destroyed = sim.creatures[0], sim.creatures[1]
        evicted.can_destroy = True
        destroyed.destroy()

        assert sim.drop_untracked() == 2
        assert evicted not in sim.creatures and destroyed not in sim.creatures
        assert not evicted.in_world()
        assert len(sim.living()) == 4
        assert sim.stats().living == 4

    def test_reset(self, sim):
        sim.start()
        sim.end_generation()
        sim.total_time = 42.0
        sim.reset()
        assert not sim.running
        assert sim.evolution.generation == 0
        assert [c.id for c in sim.creatures] == list(range(6))
        assert sim.total_time == 42.0

    def test_stats_name_the_oldest(self, sim):
        sim.creatures[2].age = 99.0
        stats = sim.stats()
        assert stats.oldest_id == sim.creatures[2].id
        assert stats.oldest_age == 99.0
        assert stats.living == 6
        assert stats.generation == 0


class TestImportExport:
    def test_invalid_document_changes_nothing(self, sim):
        population = sim.evolution.population
        creatures = list(sim.creatures)
        with pytest.raises(DnaImportError):
            sim.import_dna('{"segments": []}')
        assert sim.evolution.population is population
        assert sim.creatures == creatures
        assert not sim.running

    def test_renumbered_segments_are_rejected_before_anything_changes(self, sim, make_genome):
        document = genome_to_dict(make_genome(segments=2))
        document["segments"][0]["id"] = 10
        document["segments"][1]["id"] = 11
        document["segments"][1]["parentId"] = 10
        population = sim.evolution.population
        creatures = list(sim.creatures)
        sim.start()

        with pytest.raises(DnaImportError):
            sim.import_dna(document)
        assert sim.running
        assert sim.evolution.population is population
        assert sim.creatures == creatures
        assert all(c.in_world() for c in creatures)
        assert len(sim.world.creatures) == 6

    def test_import_seeds_and_starts(self, sim, make_genome):
        genome = make_genome(segments=2)
        imported = sim.import_dna(genome_to_dict(genome))
        assert imported == genome
        assert sim.running
        assert sim.evolution.population[0] == genome
        assert len(sim.creatures) == 6
        assert sim.creatures[0].dna == genome

    def test_import_from_json_text(self, sim, make_genome):
        genome = make_genome(segments=3)
        genome.generation = 4
        sim.import_dna(json.dumps(genome_to_dict(genome)))
        assert sim.evolution.generation == 4
        assert all(c.dna.generation == 4 for c in sim.creatures)

    def test_export_best(self, sim, tmp_path):
        sim.creatures[1].kills = 3
        path = sim.export_best(tmp_path)
        assert path.name == "creature_dna_gen0.json"
        document = json.loads(path.read_text())
        assert document["fitness"] == pytest.approx(300.0)
        assert sim.creatures[1].dna.fitness == 0.0

    def test_export_with_nobody_left(self, empty_sim, tmp_path):
        assert empty_sim.export_best(tmp_path) is None


class TestControls:
    def test_parse_args(self):
        args = parse_args(["--seed", "3", "--population", "12", "--import", "dna.json"])
        assert args.seed == 3
        assert args.population == 12
        assert args.import_path == "dna.json"
        assert args.log_level == "INFO"

    def test_keys(self, sim, tmp_path):
        log = EventLog()
        handle_key(pygame.K_SPACE, sim, log, str(tmp_path))
        assert sim.running
        handle_key(pygame.K_SPACE, sim, log, str(tmp_path))
        assert not sim.running

        handle_key(pygame.K_PLUS, sim, log, str(tmp_path))
        assert sim.speed == 2.0
        handle_key(pygame.K_MINUS, sim, log, str(tmp_path))
        assert sim.speed == 1.0

        handle_key(pygame.K_RIGHTBRACKET, sim, log, str(tmp_path))
        assert sim.target_population == 11

        handle_key(pygame.K_e, sim, log, str(tmp_path))
        assert log.recent(1)[0].kind == "export"
        assert list(tmp_path.glob("*.json"))

        handle_key(pygame.K_r, sim, log, str(tmp_path))
        assert log.recent(1)[0].kind == "reset"
