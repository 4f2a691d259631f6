import calendar
import logging
import math
from collections import namedtuple
from datetime import datetime, timezone
from decimal import Decimal

from .path_morph import format_number

logger = logging.getLogger(__name__)

CHART_WIDTH = 400
CHART_HEIGHT = 200
CHART_MARGIN = {"top": 10, "right": 0, "bottom": 18, "left": 0}

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


class ChartError(Exception):
    pass


class SeriesPoint(namedtuple("SeriesPoint", ["x", "y"])):
    """One point of the running deposit total.

    ``x`` is the deposit date as milliseconds since the epoch (UTC midnight),
    ``y`` is the cumulative amount up to and including that date.
    """

    __slots__ = ()

    @property
    def date(self):
        return datetime.fromtimestamp(self.x / 1000, tz=timezone.utc).date()


def date_to_timestamp(value):
    return calendar.timegm(value.timetuple()) * 1000


def build_deposit_series(deposits):
    """Turn ``(date, amount)`` pairs into a date-sorted running total."""
    amounts_by_date = {}
    for deposit_date, amount in deposits:
        amounts_by_date[deposit_date] = amounts_by_date.get(deposit_date, Decimal("0")) + amount

    series = []
    cumulative_amount = Decimal("0")
    for deposit_date in sorted(amounts_by_date):
        cumulative_amount += amounts_by_date[deposit_date]
        series.append(SeriesPoint(date_to_timestamp(deposit_date), cumulative_amount))
    return series


def tick_increment(start, stop, count):
    step = (stop - start) / max(0, count)
    if step <= 0 or not math.isfinite(step):
        return 0
    power = math.floor(math.log10(step))
    error = step / math.pow(10, power)
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power >= 0:
        return factor * math.pow(10, power)
    return -math.pow(10, -power) / factor


class LinearScale:
    def __init__(self, domain, output_range):
        self.domain = [float(domain[0]), float(domain[1])]
        self.range = [float(output_range[0]), float(output_range[1])]

    def nice(self, count=10):
        start, stop = self.domain
        reverse = stop < start
        if reverse:
            start, stop = stop, start

        previous_step = None
        for _ in range(10):
            step = tick_increment(start, stop, count)
            if step == previous_step:
                break
            if step > 0:
                start = math.floor(start / step) * step
                stop = math.ceil(stop / step) * step
            elif step < 0:
                start = math.ceil(start * step) / step
                stop = math.floor(stop * step) / step
            else:
                break
            previous_step = step

        self.domain = [stop, start] if reverse else [start, stop]
        return self

    def __call__(self, value):
        d0, d1 = self.domain
        r0, r1 = self.range
        span = d1 - d0
        t = (float(value) - d0) / span if span else 0.5
        return r0 + t * (r1 - r0)


class _PathBuilder:
    def __init__(self):
        self.parts = []

    def move_to(self, x, y):
        self.parts.append(f"M{format_number(x)},{format_number(y)}")

    def line_to(self, x, y):
        self.parts.append(f"L{format_number(x)},{format_number(y)}")

    def curve_to(self, x1, y1, x2, y2, x, y):
        self.parts.append(
            "C" + ",".join(format_number(v) for v in (x1, y1, x2, y2, x, y))
        )

    def __str__(self):
        return "".join(self.parts)


def basis_path(points):
    """Render ``(x, y)`` pixel points as a uniform cubic B-spline path."""
    if len(points) < 2:
        raise ChartError(f"Line generation needs at least 2 points, got {len(points)}")
    for x, y in points:
        if not (math.isfinite(x) and math.isfinite(y)):
            logger.error("Line generation failed with data %r", points)
            raise ChartError(f"Line generation failed with data {points!r}")

    path = _PathBuilder()
    (x0, y0), (x1, y1) = points[0], points[0]
    path.move_to(x0, y0)
    for index, (x, y) in enumerate(points[1:], start=1):
        if index == 2:
            path.line_to((5 * x0 + x1) / 6, (5 * y0 + y1) / 6)
        if index >= 2:
            _basis_segment(path, x0, y0, x1, y1, x, y)
        x0, y0, x1, y1 = x1, y1, x, y

    if len(points) >= 3:
        _basis_segment(path, x0, y0, x1, y1, x1, y1)
    path.line_to(x1, y1)
    return str(path)


def _basis_segment(path, x0, y0, x1, y1, x, y):
    path.curve_to(
        (2 * x0 + x1) / 3,
        (2 * y0 + y1) / 3,
        (x0 + 2 * x1) / 3,
        (y0 + 2 * y1) / 3,
        (x0 + 4 * x1 + x) / 6,
        (y0 + 4 * y1 + y) / 6,
    )


class DepositChart:
    def __init__(self, series, width=CHART_WIDTH, height=CHART_HEIGHT, margin=None):
        if len(series) < 2:
            raise ChartError("A deposit chart needs at least 2 dates")
        self.series = series
        self.width = width
        self.height = height
        self.margin = dict(margin or CHART_MARGIN)

        self.first = series[0]
        self.last = series[-1]
        self.x_scale = LinearScale(
            [self.first.x, self.last.x],
            [self.margin["left"], width - self.margin["right"]],
        )
        self.y_scale = LinearScale(
            [self.first.y, self.last.y],
            [height - self.margin["bottom"], self.margin["top"]],
        ).nice()

        self.path = basis_path([(self.x_scale(p.x), self.y_scale(p.y)) for p in series])

    @classmethod
    def from_deposits(cls, deposits, **kwargs):
        series = build_deposit_series((d["deposit_date"], d["amount"]) for d in deposits)
        return cls(series, **kwargs)

    @property
    def svg_width(self):
        return self.width + self.margin["left"] + self.margin["right"]

    @property
    def svg_height(self):
        return self.height + self.margin["top"] + self.margin["bottom"]

    def labels(self):
        return {
            "firstDate": {
                "date": self.first.date,
                "x": self.x_scale(self.first.x),
                "y": self.height + 5,
            },
            "lastDate": {
                "date": self.last.date,
                "x": self.x_scale(self.last.x),
                "y": self.height + 5,
            },
            "firstAmount": {
                "amount": self.first.y,
                "x": self.x_scale(self.first.x),
                "y": self.y_scale(self.first.y),
            },
            "lastAmount": {
                "amount": self.last.y,
                "x": self.x_scale(self.last.x),
                "y": self.y_scale(self.last.y),
            },
        }
