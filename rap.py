from collections import namedtuple
import datetime
from enum import IntEnum
import logging
import os

import numpy as np

from _cbook import is_string_like
from _package_tools import Exporter
from _tools import bits_set, IOBuffer, NamedStruct

exporter = Exporter(globals())

log = logging.getLogger(__name__)
log.addHandler(logging.StreamHandler())
log.setLevel(logging.WARNING)

with exporter:
    # Latitude/longitude grid
    MAP_TYPE = 1
    # Run-length encoding
    COMPRESSION_METHOD = 1
    COMMENT_TRAILER = b'\r\n\x00'
    MISSING_VALUE = 0xFFFF
    # Coordinates and spacings are stored in microdegrees
    DEGREE_SCALE = 1000000
    # Reserved gap between the element code and the data start offset of an
    # index entry. Only verified against the most recent layout revision.
    RESERVED_INDEX_BYTES = 8
    RADAR_STATUS_BITS = 64
    MAX_LEVEL_REPETITIONS = 128

@exporter.export
class RapFormatError(ValueError):
    pass

@exporter.export
class InvalidTrailerError(RapFormatError):
    pass

@exporter.export
class UnsupportedIntervalError(RapFormatError):
    pass

@exporter.export
class UnsupportedMapTypeError(RapFormatError):
    pass

@exporter.export
class UnsupportedCompressionError(RapFormatError):
    pass

@exporter.export
class DataNotRecordedError(LookupError):
    pass

@exporter.export
class ObservationTimes(IntEnum):
    HOURLY = 24
    HALF_HOURLY = 48

    @property
    def minutes(self):
        return 24 * 60 // self.value

def observation_times(count):
    try:
        return ObservationTimes(count)
    except ValueError:
        raise UnsupportedIntervalError('Unsupported number of observations per file: {:d}'.format(count)) from None

def rap_to_datetime(year, month, day, hour, minute):
    try:
        return datetime.datetime(year, month, day, hour, minute)
    except ValueError as e:
        raise RapFormatError('Invalid observation time {:04d}-{:02d}-{:02d} {:02d}:{:02d}: {}'.format(year, month, day, hour, minute, e)) from e

with exporter:
    CommentHeader = namedtuple('CommentHeader', 'identifier version creator_comment')
    CompressionTable = namedtuple('CompressionTable', 'method level_values')
    LevelRepetition = namedtuple('LevelRepetition', 'level repeat')
    LocationValue = namedtuple('LocationValue', 'latitude longitude value')

@exporter.export
class DataIndexEntry(namedtuple('DataIndexEntry', 'timestamp element data_start compressed_size radar_status station_count')):
    __slots__ = ()

    @property
    def active_radars(self):
        return bits_set(self.radar_status, RADAR_STATUS_BITS)

@exporter.export
class GridDefinition(namedtuple('GridDefinition', 'map_type start_latitude start_longitude cell_width cell_height horizontal_count vertical_count')):
    __slots__ = ()

    @property
    def cell_count(self):
        return self.horizontal_count * self.vertical_count

    @property
    def end_latitude(self):
        return self.start_latitude - (self.vertical_count - 1) * self.cell_height

    @property
    def end_longitude(self):
        return self.start_longitude + (self.horizontal_count - 1) * self.cell_width

    @property
    def cell_width_degrees(self):
        return self.cell_width / DEGREE_SCALE

    @property
    def cell_height_degrees(self):
        return self.cell_height / DEGREE_SCALE

@exporter.export
class DataIndex(object):
    def __init__(self, entries):
        self.entries = tuple(entries)
        self.interval = observation_times(len(self.entries))

    @property
    def timestamps(self):
        return [entry.timestamp for entry in self.entries]

    def lookup(self, timestamp):
        for entry in self.entries:
            if entry.timestamp == timestamp:
                return entry
        raise DataNotRecordedError('No observation recorded for {}'.format(timestamp))

    def __contains__(self, timestamp):
        return any(entry.timestamp == timestamp for entry in self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def __getitem__(self, ind):
        return self.entries[ind]

@exporter.export
class RapFile(object):
    """Parsed header of a RAP precipitation-analysis file.

    The whole management part is read on construction: comment, data index
    (including the size, radar status and station count stored at the head
    and tail of every data record), grid definition, level values and the
    level-repetition table. Any short read or format violation raises and no
    object is produced. Once parsed, the instance is read-only; decoding
    sessions created by `values` borrow its tables.
    """

    index_entry_fmt = NamedStruct([
        ('year',       'H'),
        ('month',      'B'),
        ('day',        'B'),
        ('hour',       'B'),
        ('minute',     'B'),
        ('element',    'H'),
        (None,         '{:d}x'.format(RESERVED_INDEX_BYTES)),
        ('data_start', 'L')
    ], '<', 'IndexEntry')

    record_tail_fmt = NamedStruct([
        ('radar_status',  'Q'),
        ('station_count', 'L')
    ], '<', 'RecordTail')

    map_type_fmt = NamedStruct([
        (None,       '2x'),
        ('map_type', 'H')
    ], '<', 'MapType')

    grid_fmt = NamedStruct([
        ('start_latitude',   'L'),
        ('start_longitude',  'L'),
        ('cell_width',       'L'),
        ('cell_height',      'L'),
        ('horizontal_count', 'H'),
        ('vertical_count',   'H'),
        (None,               '16x')
    ], '<', 'Grid')

    level_repetition_fmt = NamedStruct([
        ('level',  'B'),
        ('repeat', 'B')
    ], '<', 'LevelRepetition')

    def __init__(self, filename):
        if is_string_like(filename):
            self.filename = os.fspath(filename)
            self._data = None
            buf = IOBuffer.fromfile(self.filename)
        else:
            self.filename = 'No Filename'
            # Header offsets are absolute
            filename.seek(0)
            self._data = bytes(filename.read())
            buf = IOBuffer.frombytes(self._data)

        with buf:
            self.comment = self._read_comment(buf)
            self.index = self._read_data_index(buf)
            self.grid = self._read_grid_definition(buf)
            self.compression = self._read_compression(buf)
            self.level_repetitions = self._read_level_repetitions(buf)

        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError('{} is read-only once parsed'.format(type(self).__name__))
        super(RapFile, self).__setattr__(name, value)

    def _read_comment(self, buf):
        try:
            identifier = buf.read_str(6)
            version = buf.read_str(5)
            creator_comment = buf.read_str(66)
        except UnicodeDecodeError as e:
            raise RapFormatError('Comment block is not valid text: {}'.format(e)) from e

        trailer = buf.read(3)
        if trailer != COMMENT_TRAILER:
            raise InvalidTrailerError('Comment block must end with 0D 0A 00, found {}'.format(trailer.hex(' ').upper()))

        log.debug('%s: %s version %s', self.filename, identifier, version)
        return CommentHeader(identifier, version, creator_comment)

    def _read_data_index(self, buf):
        count = buf.read_uint32()
        interval = observation_times(count)

        entries = []
        for _ in range(count):
            raw = buf.read_struct(self.index_entry_fmt)
            timestamp = rap_to_datetime(raw.year, raw.month, raw.day, raw.hour, raw.minute)

            # Size and trailing metadata live in the data record itself
            resume = buf.set_mark()
            buf.jump_to(raw.data_start)
            compressed_size = buf.read_uint32()
            buf.skip(compressed_size)
            tail = buf.read_struct(self.record_tail_fmt)
            buf.goto_mark(resume)

            entries.append(DataIndexEntry(timestamp, raw.element, raw.data_start, compressed_size, tail.radar_status, tail.station_count))

        log.debug('%s: %d observations indexed (%s)', self.filename, count, interval.name)
        return DataIndex(entries)

    def _read_grid_definition(self, buf):
        map_type = buf.read_struct(self.map_type_fmt).map_type
        if map_type != MAP_TYPE:
            raise UnsupportedMapTypeError('Unsupported map type: {:d}'.format(map_type))

        grid = GridDefinition(map_type, *buf.read_struct(self.grid_fmt))
        log.debug('%s: %dx%d grid', self.filename, grid.horizontal_count, grid.vertical_count)
        return grid

    def _read_compression(self, buf):
        method = buf.read_uint16()
        if method != COMPRESSION_METHOD:
            raise UnsupportedCompressionError('Unsupported compression method: {:d}'.format(method))

        num_levels = buf.read_uint16()
        level_values = tuple(buf.read_uint16() for _ in range(num_levels))
        return CompressionTable(method, level_values)

    def _read_level_repetitions(self, buf):
        count = buf.read_uint16()
        if count > MAX_LEVEL_REPETITIONS:
            log.warning('%s: %d level repetitions recorded, only the first %d are addressable', self.filename, count, MAX_LEVEL_REPETITIONS)

        return tuple(LevelRepetition(*buf.read_struct(self.level_repetition_fmt)) for _ in range(count))

    @property
    def level_values(self):
        return self.compression.level_values

    @property
    def timestamps(self):
        return self.index.timestamps

    def lookup(self, timestamp):
        return self.index.lookup(timestamp)

    def _open(self):
        if self._data is None:
            return IOBuffer.fromfile(self.filename)
        return IOBuffer.frombytes(self._data)

    def values(self, timestamp):
        entry = self.lookup(timestamp)
        return RapValueDecoder(self._open(), entry, self.grid, self.compression.level_values, self.level_repetitions)

    def get_grid(self, timestamp):
        data = np.full(self.grid.cell_count, MISSING_VALUE, dtype = 'uint16')
        with self.values(timestamp) as values:
            for ind, lv in zip(range(self.grid.cell_count), values):
                if lv.value is not None:
                    data[ind] = lv.value
        data = data.reshape(self.grid.vertical_count, self.grid.horizontal_count)
        return np.ma.masked_equal(data, MISSING_VALUE)

    def get_latitudes(self):
        rows = np.arange(self.grid.vertical_count, dtype = 'int64')
        return (self.grid.start_latitude - rows * self.grid.cell_height) / DEGREE_SCALE

    def get_longitudes(self):
        cols = np.arange(self.grid.horizontal_count, dtype = 'int64')
        return (self.grid.start_longitude + cols * self.grid.cell_width) / DEGREE_SCALE

    def __repr__(self):
        items = [self.comment, self.index.interval.name, self.grid, self.compression, len(self.level_repetitions)]
        return self.filename + ': ' + '\n'.join(map(str, items))

@exporter.export
class RapValueDecoder(object):
    """Expand one compressed data record into per-cell location values.

    Cells come out row by row from the northwest corner. Tokens are only
    fetched while the record's byte budget lasts; a repeat already decoded
    when the budget runs out is still emitted in full. Iteration is single
    pass: the first error closes the session and it yields nothing further.
    """

    def __init__(self, buf, entry, grid, level_values, level_repetitions):
        self._buffer = buf
        self.entry = entry
        self.grid = grid
        self._level_values = level_values
        self._level_repetitions = level_repetitions

        self.bytes_read = 0
        self.cells_emitted = 0
        self._latitude = grid.start_latitude
        self._longitude = grid.start_longitude
        self._column = 0
        self._value = None
        self._repeat = 0
        self._finished = False

        # Skip the 4-byte size already captured in the index entry
        self._buffer.jump_to(entry.data_start + 4)

    def __iter__(self):
        return self

    def __next__(self):
        if self._finished:
            raise StopIteration

        if not self._repeat:
            if self.bytes_read >= self.entry.compressed_size:
                self.close()
                if self.cells_emitted != self.grid.cell_count:
                    log.warning('%s: data ended after %d cells, grid holds %d', self.entry.timestamp, self.cells_emitted, self.grid.cell_count)
                raise StopIteration

            try:
                self._value, self._repeat = self._expand_run_length()
            except (IOError, RapFormatError):
                self.close()
                raise

        ret = LocationValue(self._latitude / DEGREE_SCALE, self._longitude / DEGREE_SCALE, self._value)
        self._step()
        self._repeat -= 1
        return ret

    def _step(self):
        self.cells_emitted += 1
        self._longitude += self.grid.cell_width
        self._column += 1
        if self._column >= self.grid.horizontal_count:
            self._longitude = self.grid.start_longitude
            self._latitude -= self.grid.cell_height
            self._column = 0

    def _read_run_length_byte(self):
        val = self._buffer.read_uint8()
        self.bytes_read += 1
        return val

    def _level_value(self, level):
        try:
            value = self._level_values[level]
        except IndexError:
            raise RapFormatError('Level {:d} outside the {:d}-entry level table'.format(level, len(self._level_values))) from None
        return None if value == MISSING_VALUE else value

    def _expand_run_length(self):
        code = self._read_run_length_byte()

        # Repeat taken from the level-repetition table
        if (code & 0x80) == 0x00:
            try:
                level, repeat = self._level_repetitions[code]
            except IndexError:
                raise RapFormatError('Index {:d} outside the {:d}-entry level-repetition table'.format(code, len(self._level_repetitions))) from None
            return self._level_value(level), repeat + 2

        # Explicit repeat in the following byte
        elif (code & 0xE0) == 0xC0:
            value = self._level_value(code & 0x1F)
            return value, self._read_run_length_byte() + 2

        # Single cell, common level
        elif (code & 0xC0) == 0x80:
            return self._level_value(code & 0x3F), 1

        # Single cell, level in the following byte
        elif code == 0xFE:
            return self._level_value(self._read_run_length_byte()), 1

        raise RapFormatError('Unrecognized run-length byte 0x{:02X} after {:d} bytes of {}'.format(code, self.bytes_read - 1, self.entry.timestamp))

    def close(self):
        self._finished = True
        if not self._buffer.closed:
            self._buffer.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
