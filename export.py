"""Tabular export of decoded RAP cells.

Each cell becomes one CSV row carrying its centre coordinates, the raw
measurement (tenths of a millimetre, empty when missing) and the cell
footprint as an OGC Well-known Text polygon.
"""
import csv
import logging

log = logging.getLogger(__name__)
log.addHandler(logging.StreamHandler())
log.setLevel(logging.WARNING)

CSV_HEADER = ('longitude', 'latitude', 'value', 'geom')

def grid_wkt(longitude, latitude, width, height):
    half_width = width / 2
    half_height = height / 2
    left = longitude - half_width
    right = longitude + half_width
    top = latitude + half_height
    bottom = latitude - half_height

    # Clockwise from the top-left corner, closed
    return 'POLYGON(({0} {3},{2} {3},{2} {1},{0} {1},{0} {3}))'.format(left, bottom, right, top)

def write_csv(fobj, values, cell_width, cell_height):
    writer = csv.writer(fobj, lineterminator = '\n', quoting = csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)
    rows = 0
    for lv in values:
        value = '' if lv.value is None else lv.value
        writer.writerow((lv.longitude, lv.latitude, value, grid_wkt(lv.longitude, lv.latitude, cell_width, cell_height)))
        rows += 1
    log.debug('Wrote %d cells', rows)
    return rows
