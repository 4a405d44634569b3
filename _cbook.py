import os

def is_string_like(obj):
    return isinstance(obj, (str, bytes, os.PathLike))

__all__ = ('is_string_like',)
