"""
Simulation tuning knobs.
"""

import math

# Population controls
POPULATION_SIZE = 20
POPULATION_RANGE = (5, 50)
ELITE_COUNT = 2
MUTATION_RATE = 0.15
CROSSOVER_RATE = 0.3
TOURNAMENT_SIZE = 3

# Food + health
START_FOOD = 100.0
START_HEALTH = 100.0
MAX_FOOD = 200.0
MAX_HEALTH = 200.0
FOOD_DRAIN_PER_SEC = 100.0 / 3600.0  # one hour from 100 to empty
DEATH_HOLD_SECONDS = 2.0
FADE_PER_SEC = 0.5

# Combat
DAMAGE_THRESHOLD = 2.0
DAMAGE_MULTIPLIER = 0.15
MOUTH_HEART_RADIUS = 25.0
EAT_REWARD = 150.0
AGE_BONUS_FULL_SECONDS = 4 * 3600.0

# Fitness weights
FITNESS_DISTANCE = 1.0
FITNESS_KILL = 100.0
FITNESS_DAMAGE_DEALT = 0.5
FITNESS_DAMAGE_TAKEN = 0.3

# Mid-generation reproduction
REPRO_DISTANCE = 80.0
REPRO_MIN_AGE = 30.0
REPRO_MIN_FOOD = 50.0
REPRO_MIN_HEALTH = 50.0
REPRO_COOLDOWN = 60.0
REPRO_MUTATION_RATE = 0.1
MAX_POP = 100
CHILD_SPAWN_JITTER = 40.0
CHILD_SPAWN_MARGIN = 50.0

# Generation turnover
GENERATION_END_LIVING = 2
SURVIVING_ELITES = 2
IMPORT_MUTATION_RATE = 0.2

# Runtime pacing
MAX_FRAME_SECONDS = 0.1
MAX_SUBSTEP_SECONDS = 1 / 30
SPEED_RANGE = (0.5, 1000.0)

# Environment
SCREEN_W, SCREEN_H = 980, 720
WALL_THICKNESS = 200.0
WALL_RESTITUTION = 0.8
OBSTACLE_COUNT_RANGE = (5, 9)
SPAWN_MARGIN = 150.0

# Motors/sensors
AMPLITUDE_RANGE = (0.0, 20.0)
FREQUENCY_RANGE = (0.1, 5.0)
AMPLITUDE_MOD_GAIN = 5.0
PHASE_MOD_GAIN = math.pi
BEAUTY_SIGNAL_BOOST = 0.3
STICKY_FRICTION = (0.95, 1.0)
SLIPPERY_FRICTION = (0.1, 0.05)

# Power-ups
MAX_POWER_UPS = 2
SUPER_POWER_UP_CHANCE = 0.2
POWER_UP_MARGIN = 100.0
SUPER_FLEE_RADIUS = 150.0
SUPER_FLEE_FORCE = 0.002
GRIPPER_REACH = 100.0
GRIPPER_FORCE = 0.0002

# Event log
EVENT_LOG_LINES = 200
