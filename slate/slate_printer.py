"""
A pretty-printer for values returned by session statements.
"""
import collections.abc


class Printer:
    """Formats Python objects into readable text for the Output Sink."""

    def __init__(self, indent_width=2, max_width=80):
        self._indent_char = " " * indent_width
        self._max_width = max_width
        self._handlers = self._create_handlers()
        # ids of the containers currently being formatted
        self._active = set()

    def pformat(self, obj, level=0):
        """Public entry point to format an object.

        Never raises: a value whose own repr fails is shown as `object.__repr__`
        would show it, and a container reached again through itself as `[...]`.
        """
        key = id(obj)
        if key in self._active:
            return self._pformat_recursive(obj)
        handler = self._get_handler(obj)
        self._active.add(key)
        try:
            return handler(obj, level)
        except Exception:
            return object.__repr__(obj)
        finally:
            self._active.discard(key)

    def _pformat_recursive(self, obj):
        if isinstance(obj, collections.abc.Mapping): return '{...}'
        if isinstance(obj, tuple): return '(...)'
        if isinstance(obj, list): return '[...]'
        return '...'

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Subclasses with their own __repr__ (enums, namedtuples, Counters) keep it
        if obj_type.__repr__ not in (dict.__repr__, list.__repr__, tuple.__repr__, set.__repr__, object.__repr__):
            if not isinstance(obj, (bool, int, float, str)):
                return lambda o, l: repr(o)
        if isinstance(obj, collections.abc.Mapping): return self._pformat_dict
        if isinstance(obj, tuple): return self._pformat_tuple
        if isinstance(obj, list): return self._pformat_list
        if isinstance(obj, (set, frozenset)): return self._pformat_set
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_primitive_repr,
            bytes: self._pformat_primitive_repr,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            complex: self._pformat_primitive_repr,
            bool: self._pformat_primitive,
            type(None): self._pformat_none,
            list: self._pformat_list,
            tuple: self._pformat_tuple,
            set: self._pformat_set,
            frozenset: self._pformat_set,
            dict: self._pformat_dict,
        }

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_primitive_repr(self, obj, level):
        return repr(obj)

    def _pformat_none(self, obj, level):
        return 'None'

    def _pformat_list(self, obj, level):
        return self._pformat_block([self.pformat(item, level + 1) for item in obj], level, '[', ']')

    def _pformat_tuple(self, obj, level):
        items = [self.pformat(item, level + 1) for item in obj]
        if len(items) == 1:
            return f"({items[0]},)"
        return self._pformat_block(items, level, '(', ')')

    def _pformat_set(self, obj, level):
        if not obj:
            return 'set()' if isinstance(obj, set) else 'frozenset()'
        try:
            ordered = sorted(obj)
        except TypeError:
            ordered = list(obj)
        return self._pformat_block([self.pformat(item, level + 1) for item in ordered], level, '{', '}')

    def _pformat_dict(self, obj, level):
        items = [f"{self.pformat(k, level + 1)}: {self.pformat(v, level + 1)}" for k, v in obj.items()]
        return self._pformat_block(items, level, '{', '}')

    def _pformat_block(self, items, level, open_char, close_char):
        if not items:
            return f"{open_char}{close_char}"

        flat = f"{open_char}{', '.join(items)}{close_char}"
        indent_len = len(self._indent_char) * level
        if '\n' not in flat and indent_len + len(flat) <= self._max_width:
            return flat

        outer_indent = self._indent_char * level
        inner_indent = self._indent_char * (level + 1)
        lines = [f"{inner_indent}{item}," for item in items]
        return f"{open_char}\n" + "\n".join(lines) + f"\n{outer_indent}{close_char}"
