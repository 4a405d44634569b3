import ast
import glob
import logging
import os.path

import matplotlib.colors as mcolors

TABLE_EXT = '.tbl'
DEFAULT_TABLE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'resources', 'colortables')

# Bin edges in tenths of a millimetre for the bundled precipitation table
PRECIP_BOUNDARIES = [1, 10, 50, 100, 200, 300, 500, 800, 10000]

log = logging.getLogger(__name__)
log.addHandler(logging.StreamHandler())
log.setLevel(logging.WARNING)

def _parse(s):
	if hasattr(s, 'decode'):
		s = s.decode('ascii')

	s = s.strip()
	if s and not s.startswith('#'):
		return ast.literal_eval(s)

	return None

def read_colortable(fobj):
	ret = list()
	try:
		for line in fobj:
			literal = _parse(line)
			if literal:
				ret.append(mcolors.to_rgb(literal))
		return ret
	except (SyntaxError, ValueError):
		raise RuntimeError('Malformed colortable.')

class ColortableRegistry(dict):
	def scan_dir(self, path):
		for fname in glob.glob(os.path.join(path, '*' + TABLE_EXT)):
			if os.path.isfile(fname):
				with open(fname, 'r') as fobj:
					try:
						self.add_colortable(fobj, os.path.splitext(os.path.basename(fname))[0])
						log.debug('Added colortable from file: %s', fname)
					except RuntimeError:
						log.info('Skipping unparsable file: %s', fname)

	def add_colortable(self, fobj, name):
		self[name] = read_colortable(fobj)

	def get_with_boundaries(self, name, boundaries):
		cmap = self.get_colortable(name)
		if len(boundaries) != cmap.N + 1:
			raise ValueError('{} has {:d} colors and needs {:d} boundaries, got {:d}'.format(name, cmap.N, cmap.N + 1, len(boundaries)))
		return mcolors.BoundaryNorm(boundaries, cmap.N), cmap

	def get_colortable(self, name):
		return mcolors.ListedColormap(self[name], name = name)

registry = ColortableRegistry()
registry.scan_dir(os.environ.get('RAP_COLORTABLE_DIR', DEFAULT_TABLE_DIR))
