"""
Location codes and rack arrangement

A storage location is ZONE-ROW-SHELF, e.g. A-01-02: zone code, rack row
number and shelf number. Nothing in here touches the database.
"""
import math
import re

LOCATION_CODE_RE = re.compile(r'^([A-Z0-9]+)-(\d{1,3})-(\d{1,3})$')

MAX_SHELVES = 20


def parse_location_code(value):
    """Split 'A-01-02' into ('A', '01', '02'); None when the code is malformed"""
    if not value:
        return None
    match = LOCATION_CODE_RE.match(str(value).strip().upper())
    if not match:
        return None
    return match.groups()


def format_location_code(zone_code, row_number, shelf_number):
    return f"{zone_code}-{row_number}-{shelf_number}"


def shelf_number(index):
    """1 -> '01'"""
    return str(index).zfill(2)


def shelf_numbers(count):
    return [shelf_number(i) for i in range(1, count + 1)]


def location_sort_key(code):
    """Walking order zone -> row -> shelf; unparseable or empty codes sort last"""
    parsed = parse_location_code(code)
    if parsed is None:
        return (1, '', 0, 0)
    zone, row, shelf = parsed
    return (0, zone, int(row), int(shelf))


def _row_value(rack):
    try:
        return int(rack.row_number)
    except (TypeError, ValueError):
        return 0


def arrange_racks(racks, columns=2, rows=None, gap_x=18, gap_y=12, start_x=0, start_y=0,
                  sort_by='row_number', arrange_by='row'):
    """
    Lay racks out on a grid.

    When rows is given the column count follows from it. arrange_by='row'
    fills left to right, then down; 'column' fills top to bottom, then
    right. Returns [(rack, pos_x, pos_y), ...] in placement order.
    """
    racks = list(racks)
    if not racks:
        return []

    if sort_by == 'current':
        racks.sort(key=lambda rack: (rack.pos_y, rack.pos_x))
    elif sort_by == 'id':
        racks.sort(key=lambda rack: rack.id)
    else:
        racks.sort(key=_row_value)

    count = len(racks)
    if rows:
        effective_rows = max(1, int(rows))
        effective_columns = math.ceil(count / effective_rows)
    else:
        effective_columns = max(1, int(columns or 1))
        effective_rows = math.ceil(count / effective_columns)

    placements = []
    for index, rack in enumerate(racks):
        if arrange_by == 'column':
            col, row = index // effective_rows, index % effective_rows
        else:
            col, row = index % effective_columns, index // effective_columns
        placements.append((rack, start_x + col * gap_x, start_y + row * gap_y))
    return placements
