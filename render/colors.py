"""
creature_evolution module: render/colors.py

Central color palette + small color helpers.
"""

BG = (14, 14, 18)
OBSTACLE = (51, 65, 85)
JOINT = (110, 110, 120)
TEXT = (235, 235, 235)
TEXT_DIM = (150, 150, 160)

HEALTH_POWER_UP = (68, 255, 68)
SUPER_POWER_UP = (255, 68, 68)

HEART = (230, 50, 70)
MOUTH = (245, 245, 245)
GRIPPER = (240, 200, 60)
EYE_RAY = (120, 170, 255)

HEALTH_BAR = (80, 210, 110)
FOOD_BAR = (230, 170, 60)
BAR_BG = (45, 45, 55)

LOG_KIND = {
    "birth": (120, 200, 255),
    "death": (240, 120, 120),
}


def mix(a, b, t: float):
    t = max(0.0, min(1.0, t))
    return tuple(int(a[i] + (b[i] - a[i]) * t) for i in range(3))


def fade(color, alpha: float):
    """Blend toward the background as alpha goes to 0."""
    return mix(BG, color, alpha)


def greyed(color):
    v = sum(color) // 3
    return mix(color, (v, v, v), 0.7)
