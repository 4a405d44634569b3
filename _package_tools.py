__all__ = ('Exporter',)

class Exporter(object):
    def __init__(self, globls):
        self.globls = globls
        self.exports = globls.setdefault('__all__', [])

    def _add(self, name):
        if not name.startswith('_') and name not in self.exports:
            self.exports.append(name)

    def export(self, defn):
        self._add(defn.__name__)
        return defn

    def __enter__(self):
        self.start_vars = set(self.globls)

    def __exit__(self, exc_type, exc_val, exc_tb):
        for name in sorted(set(self.globls) - self.start_vars):
            self._add(name)
        del self.start_vars
