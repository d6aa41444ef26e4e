""" Wrapper module to select the most performant available library to handle
    the equivalent of :func:`json.loads` and :func:`json.dumps`.
"""

# The business about conditionally importing the libraries is intended to
# avoid importing less efficient libraries if they are not available.

orjson = None
json = None

try:
    import orjson
except ImportError:
    import json


# orjson.dumps returns bytes. To maintain alignment all 'dumps' methods need
# to do so as well. The standard library accepts non-string dictionary keys,
# orjson only does so when asked.

def json_dumps(*args, **kwargs):
    return json.dumps(*args, **kwargs).encode()

def orjson_dumps(value):
    return orjson.dumps(value, option=orjson.OPT_NON_STR_KEYS)

if orjson is not None:
    dumps = orjson_dumps
    loads = orjson.loads
else:
    dumps = json_dumps
    loads = json.loads

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
