"""Shape interpolation between two SVG path strings.

Both paths are normalised to a start point followed by cubic Bézier
segments. When the segment counts differ, the shorter path is subdivided
with de Casteljau splits until the counts match, after which every control
point is blended linearly. Only single-subpath ``M``/``L``/``C``/``Z`` data
(absolute or relative) is understood.
"""
import re

_TOKEN_RE = re.compile(
    r"(?P<command>[MmLlCcZz])"
    r"|(?P<number>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
    r"|(?P<separator>[\s,]+)"
    r"|(?P<invalid>.)"
)

_ARITY = {"M": 2, "L": 2, "C": 6, "Z": 0}


def format_number(value):
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _tokenize(path):
    for match in _TOKEN_RE.finditer(path):
        kind = match.lastgroup
        if kind == "separator":
            continue
        if kind == "invalid":
            raise ValueError(f"Unexpected character {match.group()!r} in path data")
        if kind == "number":
            yield float(match.group())
        else:
            yield match.group()


def _group_commands(path):
    commands = []
    command = None
    args = []
    for token in _tokenize(path):
        if isinstance(token, str):
            if command is not None:
                commands.append((command, args))
            command, args = token, []
        elif command is None:
            raise ValueError("Path data must start with a command")
        else:
            args.append(token)
    if command is not None:
        commands.append((command, args))
    return commands


def _line_as_cubic(x0, y0, x, y):
    return (
        x0 + (x - x0) / 3,
        y0 + (y - y0) / 3,
        x0 + 2 * (x - x0) / 3,
        y0 + 2 * (y - y0) / 3,
        x,
        y,
    )


def parse_path(path):
    """Return ``(start, segments)`` with every segment as a cubic."""
    commands = _group_commands(path)
    if not commands or commands[0][0] not in "Mm":
        raise ValueError("Path data must start with a moveto")

    start = None
    segments = []
    x = y = 0.0
    for command, args in commands:
        upper = command.upper()
        relative = command != upper
        arity = _ARITY[upper]

        if upper == "Z":
            if args:
                raise ValueError("Closepath takes no arguments")
            segments.append(_line_as_cubic(x, y, *start))
            x, y = start
            continue

        if not args or len(args) % arity:
            raise ValueError(f"Command {command!r} has {len(args)} arguments")

        for offset in range(0, len(args), arity):
            values = args[offset:offset + arity]
            if relative:
                values = [v + (x if i % 2 == 0 else y) for i, v in enumerate(values)]

            if upper == "M" and offset == 0:
                if start is not None:
                    raise ValueError("Paths with more than one subpath are not supported")
                start = (values[0], values[1])
                x, y = start
            elif upper in "ML":
                segments.append(_line_as_cubic(x, y, values[0], values[1]))
                x, y = values[0], values[1]
            else:
                segments.append(tuple(values))
                x, y = values[4], values[5]

    return start, segments


def _lerp(a, b, t):
    return a + (b - a) * t


def _split_cubic(p0, segment, t):
    x0, y0 = p0
    x1, y1, x2, y2, x3, y3 = segment

    ax, ay = _lerp(x0, x1, t), _lerp(y0, y1, t)
    bx, by = _lerp(x1, x2, t), _lerp(y1, y2, t)
    cx, cy = _lerp(x2, x3, t), _lerp(y2, y3, t)
    dx, dy = _lerp(ax, bx, t), _lerp(ay, by, t)
    ex, ey = _lerp(bx, cx, t), _lerp(by, cy, t)
    fx, fy = _lerp(dx, ex, t), _lerp(dy, ey, t)

    return (ax, ay, dx, dy, fx, fy), (ex, ey, cx, cy, x3, y3)


def subdivide(start, segments, count):
    """Split ``segments`` into exactly ``count`` pieces of the same shape."""
    if count < len(segments):
        raise ValueError("Cannot reduce the number of segments")
    if not segments:
        x, y = start
        return [(x, y, x, y, x, y)] * count

    base, remainder = divmod(count, len(segments))
    result = []
    p0 = start
    for index, segment in enumerate(segments):
        pieces = base + 1 if index < remainder else base
        while pieces > 1:
            left, segment = _split_cubic(p0, segment, 1 / pieces)
            result.append(left)
            p0 = left[4], left[5]
            pieces -= 1
        result.append(segment)
        p0 = segment[4], segment[5]
    return result


def serialize_path(start, segments):
    parts = [f"M{format_number(start[0])},{format_number(start[1])}"]
    for segment in segments:
        parts.append("C" + ",".join(format_number(v) for v in segment))
    return "".join(parts)


def interpolate_path(start_path, end_path):
    """Return ``f(t)`` morphing ``start_path`` (t=0) into ``end_path`` (t=1)."""
    a_start, a_segments = parse_path(start_path)
    b_start, b_segments = parse_path(end_path)

    count = max(len(a_segments), len(b_segments))
    a_segments = subdivide(a_start, a_segments, count)
    b_segments = subdivide(b_start, b_segments, count)

    def interpolator(t):
        if t <= 0:
            return start_path
        if t >= 1:
            return end_path
        start = (_lerp(a_start[0], b_start[0], t), _lerp(a_start[1], b_start[1], t))
        segments = [
            tuple(_lerp(a, b, t) for a, b in zip(a_segment, b_segment))
            for a_segment, b_segment in zip(a_segments, b_segments)
        ]
        return serialize_path(start, segments)

    return interpolator
