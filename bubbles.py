# Bubble sizing for the top-artists chart.

# (ratio threshold, max bubble px); a more skewed library gets bigger bubbles
BUBBLE_BANDS = [
    (1 / 10, 150),
    (1 / 20, 180),
    (1 / 40, 210),
    (1 / 50, 250),
    (1 / 70, 300),
]
FALLBACK_BUBBLE = 400

RADIUS_EXPONENT = 1 / 1.2


def playcount_ratio(min_playcount: int, max_playcount: int) -> float:
    if max_playcount <= 0:
        return 1.0
    return min_playcount / max_playcount


def max_bubble_size(ratio: float) -> int:
    for threshold, size in BUBBLE_BANDS:
        if ratio > threshold:
            return size
    return FALLBACK_BUBBLE


def bubble_radius(playcount: int, max_playcount: int, max_size: float) -> float:
    """Power-law compressed radius so small artists stay visible."""
    if max_playcount <= 0:
        return 0.0
    return (playcount / max_playcount) ** RADIUS_EXPONENT * max_size
