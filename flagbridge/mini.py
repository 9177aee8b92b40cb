"""Mini-notation parser.

Supported syntax::

    a b c        sequence, one step each
    ~  -         rest
    [a b]        subsequence squeezed into one step
    <a b>        alternation, one step per cycle
    a, b         play sequences at once (inside any group or at the top level)
    a*2  a/2     speed up / slow down a step
    a!3  a !     replicate a step
    a@3          elongate a step to three units

Anything else (``?``, ``|``, euclid parentheses, ``.`` feet) is rejected with
a MiniNotationError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, NoReturn

from .errors import MiniNotationError
from .pattern import Pattern, pure, silence, stack, timecat, to_time

_WORD = re.compile(r"-?[A-Za-z0-9_#:.'^]+")
_INT = re.compile(r"-?\d+")
_FLOAT = re.compile(r"-?(\d+\.\d*|\.\d+)([eE]-?\d+)?")
_SYMBOLS = frozenset("[]<>,*/!@")
_UNSUPPORTED = frozenset("?|(){}%")


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    position: int


@dataclass(slots=True)
class _Step:
    pattern: Pattern
    weight: Fraction


def tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    index = 0
    while index < len(source):
        char = source[index]
        if char.isspace():
            index += 1
            continue
        if char in _SYMBOLS:
            tokens.append(_Token(char, char, index))
            index += 1
            continue
        if char == "~" or (char == "-" and not _starts_number(source, index)):
            tokens.append(_Token("rest", char, index))
            index += 1
            continue
        if char in _UNSUPPORTED:
            raise MiniNotationError(f"Unsupported operator {char!r}", source=source, position=index)
        match = _WORD.match(source, index)
        if match is None:
            raise MiniNotationError(f"Unexpected character {char!r}", source=source, position=index)
        text = match.group(0)
        if text == ".":
            raise MiniNotationError("Unsupported operator '.'", source=source, position=index)
        tokens.append(_Token("word", text, index))
        index = match.end()
    return tokens


def _starts_number(source: str, index: int) -> bool:
    return index + 1 < len(source) and (source[index + 1].isdigit() or source[index + 1] == ".")


def atom_value(text: str) -> Any:
    if _INT.fullmatch(text):
        return int(text)
    if _FLOAT.fullmatch(text):
        return float(text)
    return text


class _Parser:
    def __init__(self, source: str) -> None:
        self._source = source
        self._tokens = tokenize(source)
        self._index = 0

    def parse(self) -> Pattern:
        pattern = self._parse_stack(closer=None)
        if self._index < len(self._tokens):
            token = self._tokens[self._index]
            self._fail(f"Unexpected {token.text!r}", token.position)
        return pattern

    def _fail(self, message: str, position: int | None = None) -> NoReturn:
        if position is None:
            position = len(self._source)
        raise MiniNotationError(message, source=self._source, position=position)

    def _peek(self) -> _Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _advance(self) -> _Token:
        token = self._peek()
        if token is None:
            self._fail("Unexpected end of input")
        self._index += 1
        return token

    def _parse_stack(self, closer: str | None, *, alternate: bool = False) -> Pattern:
        layers: list[Pattern] = []
        while True:
            steps = self._parse_steps(closer)
            layers.append(self._combine(steps, alternate=alternate))
            token = self._peek()
            if token is not None and token.kind == ",":
                self._advance()
                continue
            break
        if closer is not None:
            token = self._peek()
            if token is None:
                self._fail(f"Missing closing {closer!r}")
            self._advance()
        if len(layers) == 1:
            return layers[0]
        return stack(*layers)

    def _combine(self, steps: list[_Step], *, alternate: bool) -> Pattern:
        if not steps:
            return silence()
        pattern = timecat(*((step.weight, step.pattern) for step in steps))
        if alternate:
            # <a b> plays one step per cycle, which is the sequence slowed by its length.
            total = sum((step.weight for step in steps), Fraction(0))
            return pattern.slow(total)
        return pattern

    def _parse_steps(self, closer: str | None) -> list[_Step]:
        steps: list[_Step] = []
        while True:
            token = self._peek()
            if token is None or token.kind == ",":
                return steps
            if token.kind in ("]", ">"):
                if token.kind != closer:
                    self._fail(f"Unexpected {token.text!r}", token.position)
                return steps
            if token.kind == "!":
                # A detached ``!`` repeats the previous step.
                self._advance()
                if not steps:
                    self._fail("Nothing to replicate", token.position)
                steps.append(_Step(steps[-1].pattern, steps[-1].weight))
                continue
            steps.extend(self._parse_step())

    def _parse_step(self) -> list[_Step]:
        pattern = self._parse_term()
        weight = Fraction(1)
        repeats = 1
        while True:
            token = self._peek()
            if token is None or token.kind not in ("*", "/", "!", "@"):
                break
            # Operators bind only when attached to the previous token.
            previous = self._tokens[self._index - 1]
            if token.position != previous.position + len(previous.text):
                break
            self._advance()
            if token.kind == "*":
                pattern = pattern.fast(self._parse_number(token))
            elif token.kind == "/":
                pattern = pattern.slow(self._parse_number(token))
            elif token.kind == "@":
                weight = self._parse_number(token)
            else:
                following = self._peek()
                attached = following is not None and following.position == token.position + 1
                if attached and following.kind == "word":
                    repeats = int(self._parse_number(token))
                else:
                    repeats += 1
        return [_Step(pattern, weight) for _ in range(max(repeats, 0))]

    def _parse_number(self, operator: _Token) -> Fraction:
        token = self._peek()
        if token is None or token.kind != "word":
            self._fail(f"Expected a number after {operator.text!r}", operator.position)
        self._advance()
        value = atom_value(token.text)
        if isinstance(value, str):
            self._fail(f"Expected a number, got {token.text!r}", token.position)
        return to_time(value)

    def _parse_term(self) -> Pattern:
        token = self._advance()
        match token.kind:
            case "word":
                return pure(atom_value(token.text))
            case "rest":
                return silence()
            case "[":
                return self._parse_stack(closer="]")
            case "<":
                return self._parse_stack(closer=">", alternate=True)
            case _:
                self._fail(f"Unexpected {token.text!r}", token.position)


def mini(source: str) -> Pattern:
    """Parse a mini-notation string into a pattern."""

    if not source.strip():
        return silence()
    return _Parser(source).parse()
