"""
Input and output collaborators.

The interpreter never touches stdin/stdout directly: `input` asks an
InputSource for the next value and `print` hands values to an OutputSink.
"""

from typing import IO, Iterable, List, Optional, Protocol, Union, runtime_checkable
import sys

from .values import Value, bool_val, int_val, float_val, string_val, format_value, wrap_python


class _Exhausted:
    """Sentinel returned by an InputSource with nothing left to read."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EXHAUSTED"

    def __bool__(self) -> bool:
        return False


EXHAUSTED = _Exhausted()


@runtime_checkable
class InputSource(Protocol):
    def next(self, prompt: Optional[str] = None) -> Union[Value, _Exhausted]:
        """Return the next input value, or EXHAUSTED."""
        ...


@runtime_checkable
class OutputSink(Protocol):
    def emit(self, value: Value) -> None:
        ...


_NON_FINITE_WORDS = ("nan", "inf", "infinity")


def coerce_input(text: str) -> Value:
    """
    Turn one line of raw input into a Value.

    ``true``/``false`` become bools, then int and float are tried, and
    anything else (including ``nan`` and ``inf``) is a string with surrounding
    quotes stripped.
    """
    text = text.strip()

    if text.lower() == 'true':
        return bool_val(True)
    elif text.lower() == 'false':
        return bool_val(False)

    try:
        return int_val(int(text))
    except ValueError:
        pass

    # "nan", "inf" and "infinity" are words here, not numbers
    if text.lstrip("+-").lower() not in _NON_FINITE_WORDS:
        try:
            return float_val(float(text))
        except ValueError:
            pass

    if len(text) >= 2 and ((text.startswith('"') and text.endswith('"')) or
                           (text.startswith("'") and text.endswith("'"))):
        text = text[1:-1]

    return string_val(text)


class ConsoleInput:
    """Reads one line per `input` statement, writing the prompt first."""

    def __init__(self, stream: Optional[IO[str]] = None, prompt_stream: Optional[IO[str]] = None,
                 echo_prompts: bool = True):
        self.stream = stream if stream is not None else sys.stdin
        self.prompt_stream = prompt_stream if prompt_stream is not None else sys.stdout
        self.echo_prompts = echo_prompts

    def next(self, prompt: Optional[str] = None) -> Union[Value, _Exhausted]:
        if prompt and self.echo_prompts:
            self.prompt_stream.write(prompt)
            self.prompt_stream.flush()
        line = self.stream.readline()
        if line == "":
            return EXHAUSTED
        return coerce_input(line)


class ScriptedInput:
    """
    Feeds a fixed sequence of inputs.

    Items may be raw strings (coerced like console lines), Values, or plain
    Python objects.
    """

    def __init__(self, items: Iterable = ()):
        self._items = list(items)
        self._position = 0
        self.prompts: List[Optional[str]] = []

    def next(self, prompt: Optional[str] = None) -> Union[Value, _Exhausted]:
        self.prompts.append(prompt)
        if self._position >= len(self._items):
            return EXHAUSTED
        item = self._items[self._position]
        self._position += 1
        if isinstance(item, str):
            return coerce_input(item)
        return wrap_python(item)

    @property
    def remaining(self) -> int:
        return len(self._items) - self._position


class ConsoleOutput:
    """Writes the display form of each value on its own line."""

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream if stream is not None else sys.stdout

    def emit(self, value: Value) -> None:
        self.stream.write(format_value(value) + "\n")


class CollectingOutput:
    """Keeps every emitted value; used by tests and embedding callers."""

    def __init__(self):
        self.values: List[Value] = []

    def emit(self, value: Value) -> None:
        self.values.append(value)

    @property
    def lines(self) -> List[str]:
        return [format_value(v) for v in self.values]
