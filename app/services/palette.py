"""Fixed colour cycle for chart series and categories."""

BASE_COLORS = [
    "255, 99, 132",   # red
    "54, 162, 235",   # blue
    "255, 205, 86",   # yellow
    "75, 192, 192",   # teal
    "153, 102, 255",  # purple
    "255, 159, 64",   # orange
    "201, 203, 207",  # grey
    "255, 99, 255",   # pink
    "99, 255, 132",   # green
    "132, 99, 255",   # violet
]


def generate_colors(count: int, alpha: float = 1) -> list[str]:
    """Return `count` colours, wrapping around the base palette."""
    colors = []
    for i in range(max(count, 0)):
        rgb = BASE_COLORS[i % len(BASE_COLORS)]
        if alpha == 1:
            colors.append(f"rgb({rgb})")
        else:
            colors.append(f"rgba({rgb}, {alpha})")
    return colors
