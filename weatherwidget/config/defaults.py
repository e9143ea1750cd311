"""Default set of cities served by the widget."""

DEFAULT_CITIES: list[str] = [
    "Nizhny Novgorod",
    "Moscow",
    "Saint Petersburg",
]
