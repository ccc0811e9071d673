"""Parsers for the input-describing artifacts of a build.

- ``build-environment``: one ``KEY=VALUE`` per line.
- ``system-packages``: one ``name version`` per line.
- ``opam-switch``: an opam switch export, i.e. opam file syntax with an
  ``installed:`` list and one ``package "name" { ... }`` section per package.

All parsers raise ``Corrupt`` on malformed input and never touch the disk.
"""

from __future__ import annotations

from typing import NamedTuple, Union

from buildrepro.core.errors import Corrupt
from buildrepro.models.diff import Command, Package


def parse_environment(text: str) -> dict[str, str]:
    env: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        key, sep, value = line.partition("=")
        if not sep or not key:
            raise Corrupt(f"build-environment line {lineno}: expected KEY=VALUE, got {line!r}")
        env[key] = value
    return env


def parse_system_packages(text: str) -> dict[str, str]:
    packages: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        fields = line.split(None, 1)
        if not fields:
            continue
        if len(fields) != 2:
            raise Corrupt(f"system-packages line {lineno}: expected 'name version', got {line!r}")
        packages[fields[0]] = fields[1].strip()
    return packages


# ---------------------------------------------------------------------------
# opam syntax: lexer
# ---------------------------------------------------------------------------


class _Token(NamedTuple):
    kind: str  # "string", "ident", "symbol"
    text: str
    line: int


_PUNCTUATION = "[]{}:()"
_OPERATOR_CHARS = "=!<>&|?+-~"
_IDENT_EXTRA = "_-+.%/@"


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i, line, n = 0, 1, len(text)
    while i < n:
        c = text[i]
        if c == "\n":
            line += 1
            i += 1
        elif c.isspace():
            i += 1
        elif c == "#":
            while i < n and text[i] != "\n":
                i += 1
        elif text.startswith("(*", i):
            end = text.find("*)", i + 2)
            if end < 0:
                raise Corrupt(f"opam-switch line {line}: unterminated comment")
            line += text.count("\n", i, end)
            i = end + 2
        elif text.startswith('"""', i):
            end = text.find('"""', i + 3)
            if end < 0:
                raise Corrupt(f"opam-switch line {line}: unterminated string")
            tokens.append(_Token("string", text[i + 3 : end], line))
            line += text.count("\n", i, end)
            i = end + 3
        elif c == '"':
            value, i, newlines = _read_string(text, i + 1, line)
            tokens.append(_Token("string", value, line))
            line += newlines
        elif c in _PUNCTUATION:
            tokens.append(_Token("symbol", c, line))
            i += 1
        elif c in _OPERATOR_CHARS and not (c in "+-" and i + 1 < n and text[i + 1].isalnum()):
            j = i + 1
            while j < n and text[j] in "=<>&|":
                j += 1
            tokens.append(_Token("symbol", text[i:j], line))
            i = j
        elif c.isalnum() or c in _IDENT_EXTRA:
            j = i + 1
            while j < n and (text[j].isalnum() or text[j] in _IDENT_EXTRA or text[j] == ":"
                             and j + 1 < n and (text[j + 1].isalnum() or text[j + 1] == "_")):
                j += 1
            tokens.append(_Token("ident", text[i:j], line))
            i = j
        else:
            raise Corrupt(f"opam-switch line {line}: unexpected character {c!r}")
    return tokens


_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t", "r": "\r", "b": "\b"}


def _read_string(text: str, i: int, line: int) -> tuple[str, int, int]:
    out: list[str] = []
    newlines = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"':
            return "".join(out), i + 1, newlines
        if c == "\\" and i + 1 < n:
            nxt = text[i + 1]
            if nxt == "\n":
                newlines += 1
                i += 2
                while i < n and text[i] in " \t":
                    i += 1
                continue
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        if c == "\n":
            newlines += 1
        out.append(c)
        i += 1
    raise Corrupt(f"opam-switch line {line}: unterminated string")


# ---------------------------------------------------------------------------
# opam syntax: parser
# ---------------------------------------------------------------------------


class _Atom(NamedTuple):
    text: str
    filter: str | None = None


class _List(NamedTuple):
    items: list[_Value]
    filter: str | None = None


_Value = Union[_Atom, _List]


class _Section(NamedTuple):
    kind: str
    label: str | None
    fields: dict[str, _Value]
    sections: list[_Section]


class _Parser:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self, offset: int = 0) -> _Token | None:
        idx = self._pos + offset
        return self._tokens[idx] if idx < len(self._tokens) else None

    def _next(self) -> _Token:
        tok = self._peek()
        if tok is None:
            last = self._tokens[-1].line if self._tokens else 1
            raise Corrupt(f"opam-switch line {last}: unexpected end of input")
        self._pos += 1
        return tok

    def _expect(self, text: str) -> _Token:
        tok = self._next()
        if tok.kind != "symbol" or tok.text != text:
            raise Corrupt(f"opam-switch line {tok.line}: expected {text!r}, got {tok.text!r}")
        return tok

    def parse_file(self) -> _Section:
        fields, sections = self._items(closing=None)
        return _Section(kind="", label=None, fields=fields, sections=sections)

    def _items(self, closing: str | None) -> tuple[dict[str, _Value], list[_Section]]:
        fields: dict[str, _Value] = {}
        sections: list[_Section] = []
        while True:
            tok = self._peek()
            if tok is None:
                if closing is not None:
                    self._next()
                return fields, sections
            if closing is not None and tok.kind == "symbol" and tok.text == closing:
                self._next()
                return fields, sections
            name = self._next()
            if name.kind != "ident":
                raise Corrupt(f"opam-switch line {name.line}: expected a field name, got {name.text!r}")
            following = self._peek()
            if following is not None and following.kind == "symbol" and following.text == ":":
                self._next()
                fields[name.text] = self._value()
                continue
            label = None
            if following is not None and following.kind == "string":
                label = self._next().text
            self._expect("{")
            inner_fields, inner_sections = self._items(closing="}")
            sections.append(_Section(name.text, label, inner_fields, inner_sections))

    def _value(self) -> _Value:
        tok = self._next()
        value: _Value
        if tok.kind == "symbol" and tok.text == "[":
            items: list[_Value] = []
            while True:
                nxt = self._peek()
                if nxt is None:
                    raise Corrupt(f"opam-switch line {tok.line}: unbalanced '['")
                if nxt.kind == "symbol" and nxt.text == "]":
                    self._next()
                    break
                items.append(self._value())
            value = _List(items)
        elif tok.kind == "symbol" and tok.text in ("]", "}", ":", "{"):
            raise Corrupt(f"opam-switch line {tok.line}: unexpected {tok.text!r}")
        else:
            value = _Atom(tok.text)
        nxt = self._peek()
        if nxt is not None and nxt.kind == "symbol" and nxt.text == "{":
            value = value._replace(filter=self._filter())
        return value

    def _filter(self) -> str:
        start = self._expect("{")
        depth = 1
        parts: list[str] = []
        while depth:
            tok = self._peek()
            if tok is None:
                raise Corrupt(f"opam-switch line {start.line}: unbalanced '{{'")
            self._next()
            if tok.kind == "symbol" and tok.text == "{":
                depth += 1
            elif tok.kind == "symbol" and tok.text == "}":
                depth -= 1
                if not depth:
                    break
            parts.append(f'"{tok.text}"' if tok.kind == "string" else tok.text)
        return "{" + " ".join(parts) + "}"


def _render_arg(value: _Value) -> str:
    if isinstance(value, _Atom):
        text = value.text
    else:
        text = "[" + " ".join(_render_arg(item) for item in value.items) + "]"
    return f"{text} {value.filter}" if value.filter else text


def _commands(value: _Value | None) -> list[Command]:
    if value is None:
        return []
    if isinstance(value, _Atom):
        return [(_render_arg(value),)]
    if value.items and all(isinstance(item, _Atom) for item in value.items):
        # a single command written without the outer list
        command = tuple(_render_arg(item) for item in value.items)
        return [command + ((value.filter,) if value.filter else ())]
    commands: list[Command] = []
    for item in value.items:
        if isinstance(item, _Atom):
            commands.append((_render_arg(item),))
        else:
            args = tuple(_render_arg(arg) for arg in item.items)
            commands.append(args + ((item.filter,) if item.filter else ()))
    return commands


def _atom_text(value: _Value | None) -> str | None:
    return value.text if isinstance(value, _Atom) else None


def _package_from_section(section: _Section, version: str | None) -> Package:
    name = section.label or ""
    version = _atom_text(section.fields.get("version")) or version
    if not name or version is None:
        raise Corrupt(f"opam-switch: package section {name!r} lacks a version")
    url = None
    for sub in section.sections:
        if sub.kind == "url":
            url = _atom_text(sub.fields.get("src")) or _atom_text(sub.fields.get("archive"))
    return Package(
        name=name,
        version=version,
        build=_commands(section.fields.get("build")),
        install=_commands(section.fields.get("install")),
        url=url,
    )


def _split_name_version(text: str) -> tuple[str, str]:
    name, sep, version = text.partition(".")
    if not sep or not name or not version:
        raise Corrupt(f"opam-switch: malformed installed package {text!r}")
    return name, version


def parse_switch_export(text: str) -> dict[str, Package]:
    """Parse an opam switch export into name -> ``Package``."""
    root = _Parser(_tokenize(text)).parse_file()

    installed: dict[str, str] = {}
    listed = root.fields.get("installed")
    if listed is not None:
        items = listed.items if isinstance(listed, _List) else [listed]
        for item in items:
            if not isinstance(item, _Atom):
                raise Corrupt("opam-switch: 'installed' must be a list of strings")
            name, version = _split_name_version(item.text)
            installed[name] = version

    packages = {name: Package(name=name, version=version) for name, version in installed.items()}
    for section in root.sections:
        if section.kind != "package":
            continue
        package = _package_from_section(section, installed.get(section.label or ""))
        packages[package.name] = package
    return dict(sorted(packages.items()))
