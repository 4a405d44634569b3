from collections import namedtuple
import io
from struct import Struct

class NamedStruct(Struct):
    def __init__(self, info, prefmt = '', tuple_name = None):
        if tuple_name is None:
            tuple_name = 'NamedStruct'
        names, fmts = zip(*[(i[0], i[1]) for i in info])
        self.converters = dict()
        conv_off = 0
        for ind, i in enumerate(info):
            if len(i) > 2:
                self.converters[ind - conv_off] = i[-1]
            elif not i[0]:
                conv_off += 1
        self._tuple = namedtuple(tuple_name, ' '.join(n for n in names if n))
        super(NamedStruct, self).__init__(prefmt + ''.join(f for f in fmts if f))

    def _create(self, items):
        if self.converters:
            items = list(items)
            for ind, conv in self.converters.items():
                items[ind] = conv(items[ind])
        return self._tuple(*items)

    def unpack(self, s):
        return self._create(super(NamedStruct, self).unpack(s))

class IOBuffer(object):
    """Forward reader over a seekable binary stream.

    Every read is exact: asking for more bytes than remain raises ``IOError``.
    Integers are read little-endian unless a format code says otherwise.
    """

    _int_codes = dict()

    def __init__(self, fobj):
        self._fobj = fobj
        self._bookmarks = []

    @classmethod
    def fromfile(cls, filename):
        return cls(open(filename, 'rb'))

    @classmethod
    def frombytes(cls, data):
        return cls(io.BytesIO(data))

    def set_mark(self):
        self._bookmarks.append(self.tell())
        return len(self._bookmarks) - 1

    def goto_mark(self, mark):
        self.jump_to(self._bookmarks[mark])

    def tell(self):
        return self._fobj.tell()

    def jump_to(self, pos):
        self._fobj.seek(pos)

    def skip(self, num_bytes):
        self._fobj.seek(num_bytes, io.SEEK_CUR)

    def read(self, num_bytes):
        pos = self.tell()
        data = self._fobj.read(num_bytes)
        if len(data) != num_bytes:
            raise IOError('Short read at offset {:d}: wanted {:d} bytes, got {:d}'.format(pos, num_bytes, len(data)))
        return data

    def read_struct(self, struct_class):
        return struct_class.unpack(self.read(struct_class.size))

    def read_int(self, code):
        if code not in self._int_codes:
            self._int_codes[code] = Struct(code)
        fmt = self._int_codes[code]
        return fmt.unpack(self.read(fmt.size))[0]

    def read_uint8(self):
        return self.read_int('<B')

    def read_uint16(self):
        return self.read_int('<H')

    def read_uint32(self):
        return self.read_int('<L')

    def read_uint64(self):
        return self.read_int('<Q')

    def read_str(self, num_bytes, encoding = 'utf-8'):
        return self.read(num_bytes).decode(encoding).rstrip()

    def close(self):
        self._fobj.close()

    @property
    def closed(self):
        return self._fobj.closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

def bits_set(val, num_bits):
    return [i for i in range(num_bits) if (val >> i) & 0x1]
