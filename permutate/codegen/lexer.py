from typing import List

import dataclasses
import enum
import re

class TokenKind(enum.Enum):
    """
    An enumeration of the token kinds of the template language. Only the
    distinctions the permutation engine needs are made: everything else is
    carried through as verbatim source text.
    """
    IDENT = 1
    NUMBER = 2
    STRING = 3
    PUNCT = 4
    ANNOTATION = 5
    EOF = 6

@dataclasses.dataclass(frozen=True)
class Token:
    """
    A dataclass that represents one template token.

    Attributes:
        kind (TokenKind): The kind of the token.
        text (str): The token text as written in the template.
        start (int): Offset of the first character in the template source.
        end (int): Offset one past the last character.
        line (int): 1-based line of the first character.
        column (int): 1-based column of the first character.
    """
    kind: TokenKind
    text: str
    start: int
    end: int
    line: int
    column: int

    def is_punct(self, text: str) -> bool:
        return self.kind == TokenKind.PUNCT and self.text == text

ANNOTATION_NAME = "permutate"

_token_regex = re.compile(r"""
    (?P<whitespace>\s+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*.*?\*/)
  | (?P<annotation>@[A-Za-z_][A-Za-z0-9_]*)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<number>(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?[A-Za-z]*)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<punct>::|->|<<=|>>=|==|!=|<=|>=|&&|\|\||\+\+|--|\+=|-=|\*=|/=|%=|&=|\|=|\^=|<<|>>|[{}()\[\];,.:?=<>+\-*/%&|^!~\#])
  | (?P<other>.)
""",re.VERBOSE | re.DOTALL)

_kinds = {
    "annotation": TokenKind.ANNOTATION,
    "ident": TokenKind.IDENT,
    "number": TokenKind.NUMBER,
    "string": TokenKind.STRING,
    "punct": TokenKind.PUNCT,
    "other": TokenKind.PUNCT,
}

def tokenize(source: str) -> List[Token]:
    """
    Split template source into tokens. Whitespace and comments are dropped
    from the token stream; since every token records its source offsets,
    callers recover verbatim text (comments included) by slicing the source.

    Characters outside the token set (a macro line continuation, for
    instance) come through as single-character `PUNCT` tokens.
    """

    tokens = []

    position = 0
    line = 1
    line_start = 0

    while position < len(source):
        match = _token_regex.match(source, position)

        kind_name = match.lastgroup
        text = match.group()

        if kind_name in _kinds:
            tokens.append(Token(_kinds[kind_name], text, match.start(), match.end(), line, match.start() - line_start + 1))

        newlines = text.count("\n")

        if newlines > 0:
            line += newlines
            line_start = match.start() + text.rindex("\n") + 1

        position = match.end()

    tokens.append(Token(TokenKind.EOF, "", len(source), len(source), line, position - line_start + 1))

    return tokens
