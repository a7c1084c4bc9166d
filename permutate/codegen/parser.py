from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

import dataclasses
import json

from permutate.base.errors import TemplateSyntaxError
from permutate.base.init import log_verbose
from permutate.base.parameters import Parameter
from permutate.base.parameters import ParameterTable
from permutate.base.permutations import ExplicitPermutations
from permutate.base.permutations import FilePermutations
from permutate.base.permutations import PermutationSource
from permutate.base.permutations import PermutationVariant
from permutate.base.permutations import WILDCARD

from .lexer import ANNOTATION_NAME
from .lexer import Token
from .lexer import TokenKind
from .lexer import tokenize
from .tree import Argument
from .tree import CallExpression
from .tree import FunctionParameter
from .tree import FunctionTemplate
from .tree import Guard
from .tree import Statement

_openers = {"(": ")", "[": "]", "{": "}"}
_closers = {")", "]", "}"}
_assignments = {"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="}

_parameters_keys = ("parameters", "mappings")
_permutations_key = "permutations"

@dataclasses.dataclass
class TemplateModule:
    """
    A dataclass that represents a parsed template file.

    Attributes:
        items (List[Union[str, FunctionTemplate]]): The file in order. Text
            outside of annotated functions is kept verbatim as strings.
        path (Optional[str]): The path the template was read from.
    """
    items: List[Union[str, FunctionTemplate]]
    path: Optional[str] = None

    @property
    def functions(self) -> List[FunctionTemplate]:
        return [item for item in self.items if isinstance(item, FunctionTemplate)]

    def function(self, name: str) -> FunctionTemplate:
        for function in self.functions:
            if function.name == name:
                return function

        raise KeyError(f"No templated function named {name}. Templated functions are {[function.name for function in self.functions]}")

@dataclasses.dataclass
class _ListItem:
    guards: Tuple[Guard, ...]
    text: str
    leading: str
    trailing: str

class TemplateParser:
    """
    A recursive descent parser for template files. Only the structure the
    expander needs is parsed (annotations, function signatures, top-level
    statements and their direct call expressions). Everything else is kept as
    verbatim source text sliced from the file.
    """

    source: str
    tokens: List[Token]
    path: Optional[str]

    def __init__(self, source: str, path: Optional[str] = None) -> None:
        self.source = source
        self.path = path
        self.tokens = tokenize(source)

    def error(self, message: str, token: Token) -> TemplateSyntaxError:
        if self.path is not None:
            message = f"{self.path}: {message}"

        return TemplateSyntaxError(message, token.line, token.column)

    def text(self, start: int, end: int) -> str:
        return self.source[start:end]

    def expect(self, index: int, text: str) -> Token:
        token = self.tokens[index]

        if token.kind == TokenKind.EOF or token.text != text:
            raise self.error(f"Expected '{text}', found '{token.text or 'end of file'}'", token)

        return token

    def expect_ident(self, index: int, what: str) -> Token:
        token = self.tokens[index]

        if token.kind != TokenKind.IDENT:
            raise self.error(f"Expected {what}, found '{token.text or 'end of file'}'", token)

        return token

    def matching(self, index: int) -> int:
        """
        Find the index of the bracket closing the one at `index`.
        """

        stack = []

        for ii in range(index, len(self.tokens)):
            token = self.tokens[ii]

            if token.kind != TokenKind.PUNCT:
                continue

            if token.text in _openers:
                stack.append(token)
            elif token.text in _closers:
                opener = stack.pop()

                if _openers[opener.text] != token.text:
                    raise self.error(f"Mismatched '{token.text}', expected '{_openers[opener.text]}'", token)

                if len(stack) == 0:
                    return ii

        raise self.error(f"Unclosed '{self.tokens[index].text}'", self.tokens[index])

    def skip(self, index: int) -> int:
        """
        Step over the token at `index`, or over the whole bracketed group it opens.
        """

        token = self.tokens[index]

        if token.kind == TokenKind.PUNCT and token.text in _openers:
            return self.matching(index) + 1

        return index + 1

    def find(self, start: int, end: int, text: str) -> int:
        """
        Find the first token with `text` between `start` and `end` outside of brackets.
        """

        ii = start

        while ii < end:
            if self.tokens[ii].is_punct(text):
                return ii

            ii = self.skip(ii)

        return -1

    def annotations_between(self, start: int, end: int) -> List[Token]:
        return [token for token in self.tokens[start:end] if token.kind == TokenKind.ANNOTATION]

    # ===--- module ---=== #

    def parse(self) -> TemplateModule:
        items: List[Union[str, FunctionTemplate]] = []

        cursor = 0
        depth = 0
        ii = 0

        while self.tokens[ii].kind != TokenKind.EOF:
            token = self.tokens[ii]

            if token.kind == TokenKind.ANNOTATION:
                if depth != 0 or token.text != "@" + ANNOTATION_NAME:
                    raise self.error(f"Unexpected annotation {token.text} outside of a templated function", token)

                items.append(self.text(cursor, token.start))

                function, ii = self.parse_function(ii)
                items.append(function)
                cursor = self.tokens[ii - 1].end

                continue

            if token.kind == TokenKind.PUNCT:
                if token.text in _openers:
                    depth += 1
                elif token.text in _closers:
                    depth -= 1

            ii += 1

        items.append(self.text(cursor, len(self.source)))

        return TemplateModule([item for item in items if not (isinstance(item, str) and item == "")], self.path)

    # ===--- function attribute ---=== #

    def parse_function(self, index: int) -> Tuple[FunctionTemplate, int]:
        attribute = self.tokens[index]
        self.expect(index + 1, "(")
        attribute_close = self.matching(index + 1)

        table, permutations = self.parse_attribute(index + 2, attribute_close, attribute)

        start = attribute_close + 1

        if self.tokens[start].kind == TokenKind.ANNOTATION:
            raise self.error("Only one @permutate attribute is allowed per function", self.tokens[start])

        open_paren = start

        while not self.tokens[open_paren].is_punct("("):
            token = self.tokens[open_paren]

            if token.kind == TokenKind.EOF or token.text in (";", "{", "}"):
                raise self.error("Expected a function definition after the @permutate attribute", token)

            open_paren += 1

        name = self.expect_ident(open_paren - 1, "a function name")
        close_paren = self.matching(open_paren)

        parameter_items, closing = self.parse_list(open_paren, close_paren)
        parameters = [FunctionParameter(item.text, item.guards, item.leading, item.trailing) for item in parameter_items]

        open_brace = close_paren + 1

        while not self.tokens[open_brace].is_punct("{"):
            token = self.tokens[open_brace]

            if token.kind == TokenKind.EOF or token.text == ";":
                raise self.error(f"Templated function {name.text} must have a body", token)

            open_brace += 1

        close_brace = self.matching(open_brace)

        statements, body_closing = self.parse_body(open_brace, close_brace)

        template = FunctionTemplate(
            name=name.text,
            table=table,
            permutations=permutations,
            parameters=parameters,
            statements=statements,
            prefix=self.text(self.tokens[start].start, name.start),
            closing=closing,
            between=self.text(self.tokens[close_paren].end, self.tokens[open_brace].start),
            body_closing=body_closing,
            line=attribute.line
        )

        template.validate()

        log_verbose(
            f"Parsed templated function {template.name} with {len(table)} parameters, "
            f"{len(parameters)} inputs and {len(statements)} statements"
        )

        return template, close_brace + 1

    def parse_attribute(self, start: int, end: int, attribute: Token) -> Tuple[ParameterTable, List[PermutationSource]]:
        table: Optional[ParameterTable] = None
        permutations: Optional[List[PermutationSource]] = None

        ii = start

        while ii < end:
            key = self.expect_ident(ii, "'parameters' or 'permutations'")
            self.expect(ii + 1, "=")

            if key.text in _parameters_keys:
                self.expect(ii + 2, "{")
                close = self.matching(ii + 2)
                table = self.parse_parameters(ii + 3, close)
            elif key.text == _permutations_key:
                self.expect(ii + 2, "[")
                close = self.matching(ii + 2)
                permutations = self.parse_permutations(ii + 3, close)
            else:
                raise self.error(f"Invalid argument {key.text}. Valid arguments are [parameters, permutations].", key)

            ii = close + 1

            if ii < end:
                self.expect(ii, ",")
                ii += 1

        if table is None:
            raise self.error("Missing parameters", attribute)

        if permutations is None:
            raise self.error("Missing permutations", attribute)

        return table, permutations

    def parse_parameters(self, start: int, end: int) -> ParameterTable:
        parameters = []
        seen: Dict[str, Token] = {}

        ii = start

        while ii < end:
            name = self.expect_ident(ii, "a parameter name")
            self.expect(ii + 1, ":")

            if name.text in seen:
                raise self.error(f"Parameter {name.text} is declared more than once", name)

            seen[name.text] = name

            variants = [self.expect_ident(ii + 2, f"a variant of {name.text}").text]
            ii += 3

            while ii < end and self.tokens[ii].is_punct("|"):
                variants.append(self.expect_ident(ii + 1, f"a variant of {name.text}").text)
                ii += 2

            if len(set(variants)) != len(variants):
                raise self.error(f"Parameter {name.text} declares a variant more than once", name)

            parameters.append(Parameter(name.text, tuple(variants)))

            if ii < end:
                self.expect(ii, ",")
                ii += 1

        if len(parameters) == 0:
            raise self.error("At least one parameter must be declared", self.tokens[start])

        return ParameterTable(parameters)

    def parse_permutations(self, start: int, end: int) -> List[PermutationSource]:
        sources: List[PermutationSource] = []
        explicit: List[List[PermutationVariant]] = []

        ii = start

        while ii < end:
            token = self.tokens[ii]

            if token.kind == TokenKind.IDENT and token.text == "file":
                self.expect(ii + 1, "(")
                close = self.matching(ii + 1)
                sources.append(self.parse_file(ii + 2, close, token))
            elif token.is_punct("("):
                close = self.matching(ii)
                explicit.append(self.parse_permutation(ii + 1, close))
            else:
                raise self.error(f"Expected a permutation tuple or file(...), found '{token.text}'", token)

            ii = close + 1

            if ii < end:
                self.expect(ii, ",")
                ii += 1

        if len(explicit) > 0:
            sources.insert(0, ExplicitPermutations(explicit))

        return sources

    def parse_permutation(self, start: int, end: int) -> List[PermutationVariant]:
        positions = []

        ii = start

        while ii < end:
            token = self.tokens[ii]

            if token.is_punct(WILDCARD):
                positions.append(PermutationVariant((), token.line, token.column))
                ii += 1
            else:
                variants = [self.expect_ident(ii, "a variant or '*'").text]
                ii += 1

                while ii < end and self.tokens[ii].is_punct("|"):
                    variants.append(self.expect_ident(ii + 1, "a variant").text)
                    ii += 2

                positions.append(PermutationVariant(tuple(variants), token.line, token.column))

            if ii < end:
                self.expect(ii, ",")
                ii += 1

        if len(positions) == 0:
            raise self.error("Empty permutation tuple", self.tokens[start - 1])

        return positions

    def parse_file(self, start: int, end: int, keyword: Token) -> FilePermutations:
        if end - start not in (3, 4) or self.tokens[start].kind != TokenKind.STRING or self.tokens[start + 2].kind != TokenKind.STRING:
            raise self.error('Expected file("path", "module::path")', keyword)

        self.expect(start + 1, ",")

        if end - start == 4:
            self.expect(start + 3, ",")

        return FilePermutations(self.string_value(self.tokens[start]), self.string_value(self.tokens[start + 2]))

    def string_value(self, token: Token) -> str:
        try:
            return json.loads(token.text)
        except json.JSONDecodeError:
            raise self.error(f"Invalid string literal {token.text}", token) from None

    # ===--- guards and lists ---=== #

    def parse_guards(self, start: int, end: int) -> Tuple[Tuple[Guard, ...], int]:
        guards = []

        ii = start

        while ii < end and self.tokens[ii].kind == TokenKind.ANNOTATION:
            annotation = self.tokens[ii]

            if annotation.text != "@" + ANNOTATION_NAME:
                raise self.error(f"Unknown annotation {annotation.text}", annotation)

            self.expect(ii + 1, "(")
            close = self.matching(ii + 1)

            if close != ii + 5:
                raise self.error("Expected @permutate(parameter = variant)", annotation)

            parameter = self.expect_ident(ii + 2, "a parameter name")
            self.expect(ii + 3, "=")
            variant = self.expect_ident(ii + 4, "a variant")

            guards.append(Guard(parameter.text, variant.text, annotation.line, annotation.column))

            ii = close + 1

        return tuple(guards), ii

    def parse_list(self, open_index: int, close_index: int) -> Tuple[List[_ListItem], str]:
        """
        Parse a comma separated list between two brackets, such as a parameter
        list or call arguments, where every item may be annotated. A trailing
        comma is accepted and dropped.
        """

        items = []

        separator_end = self.tokens[open_index].end
        ii = open_index + 1

        while ii < close_index:
            item_end = self.find(ii, close_index, ",")

            if item_end == -1:
                item_end = close_index

            guards, first = self.parse_guards(ii, item_end)

            if first == item_end:
                raise self.error("Expected an item after the annotation" if len(guards) > 0 else "Empty list item", self.tokens[ii])

            stray = self.annotations_between(first, item_end)

            if len(stray) > 0:
                raise self.error("Guards are only allowed in front of a parameter, statement or call argument", stray[0])

            last = self.tokens[item_end - 1]
            trailing_end = self.tokens[item_end].start if item_end != close_index else last.end

            items.append(_ListItem(
                guards=guards,
                text=self.text(self.tokens[first].start, last.end),
                leading=self.text(separator_end, self.tokens[ii].start),
                trailing=self.text(last.end, trailing_end)
            ))

            separator_end = self.tokens[item_end].end if item_end != close_index else last.end
            ii = item_end + 1

        closing = self.text(separator_end, self.tokens[close_index].start)

        return items, closing

    # ===--- statements ---=== #

    def statement_end(self, index: int, limit: int) -> int:
        """
        Find the index of the last token of the statement starting at `index`.
        """

        token = self.tokens[index]

        if index >= limit:
            raise self.error("Expected a statement", token)

        if token.is_punct("{"):
            return self.matching(index)

        if token.kind == TokenKind.IDENT and token.text in ("if", "for", "while", "switch"):
            self.expect(index + 1, "(")
            close = self.matching(index + 1)

            if token.text == "switch":
                self.expect(close + 1, "{")
                return self.matching(close + 1)

            end = self.statement_end(close + 1, limit)

            if token.text == "if" and end + 1 < limit and self.tokens[end + 1].kind == TokenKind.IDENT and self.tokens[end + 1].text == "else":
                end = self.statement_end(end + 2, limit)

            return end

        if token.kind == TokenKind.IDENT and token.text == "do":
            end = self.statement_end(index + 1, limit)
            semicolon = self.find(end + 1, limit, ";")

            if semicolon == -1:
                raise self.error("Expected ';' after do-while statement", token)

            return semicolon

        semicolon = self.find(index, limit, ";")

        if semicolon == -1:
            raise self.error("Expected ';' at the end of the statement", token)

        return semicolon

    def parse_call(self, start: int, end: int) -> Optional[Tuple[CallExpression, int]]:
        """
        Recognize a statement whose expression is a single call: `f(...);`,
        `return f(...);` or `lhs = f(...);`. Returns the call and the number
        of annotations consumed by its arguments.
        """

        if not self.tokens[end].is_punct(";"):
            return None

        expression = start

        if self.tokens[start].kind == TokenKind.IDENT and self.tokens[start].text == "return":
            expression = start + 1
        else:
            ii = start

            while ii < end:
                token = self.tokens[ii]

                if token.kind == TokenKind.PUNCT and token.text in _assignments:
                    expression = ii + 1
                    break

                ii = self.skip(ii)

        ii = expression

        if ii >= end or self.tokens[ii].kind != TokenKind.IDENT:
            return None

        ii += 1

        while ii + 1 < end and (self.tokens[ii].is_punct("::") or self.tokens[ii].is_punct(".")) and self.tokens[ii + 1].kind == TokenKind.IDENT:
            ii += 2

        if not self.tokens[ii].is_punct("("):
            return None

        open_paren = ii
        close_paren = self.matching(open_paren)

        if close_paren != end - 1:
            return None

        items, closing = self.parse_list(open_paren, close_paren)

        call = CallExpression(
            prefix=self.text(self.tokens[start].start, self.tokens[open_paren].start),
            callee=self.text(self.tokens[expression].start, self.tokens[open_paren - 1].end),
            arguments=tuple(Argument(item.text, item.guards, item.leading, item.trailing) for item in items),
            closing=closing,
            suffix=self.text(self.tokens[close_paren].end, self.tokens[end].end)
        )

        return call, sum(len(argument.guards) for argument in call.arguments)

    def parse_body(self, open_brace: int, close_brace: int) -> Tuple[List[Statement], str]:
        statements = []

        previous_end = self.tokens[open_brace].end
        ii = open_brace + 1

        while ii < close_brace:
            guards, first = self.parse_guards(ii, close_brace)

            if first == close_brace:
                raise self.error("Expected a statement after the annotation", self.tokens[ii])

            last = self.statement_end(first, close_brace)

            call = None
            consumed = 0
            parsed_call = self.parse_call(first, last)

            if parsed_call is not None:
                call, consumed = parsed_call

            stray = self.annotations_between(first, last + 1)

            if len(stray) != consumed:
                raise self.error("Guards are only allowed in front of a parameter, top-level statement or direct call argument", stray[0])

            statements.append(Statement(
                text=self.text(self.tokens[first].start, self.tokens[last].end),
                guards=guards,
                leading=self.text(previous_end, self.tokens[ii].start),
                call=call,
                line=self.tokens[first].line
            ))

            previous_end = self.tokens[last].end
            ii = last + 1

        return statements, self.text(previous_end, self.tokens[close_brace].start)

def parse_template(source: str, path: Optional[str] = None) -> TemplateModule:
    """
    Parse template source into a `TemplateModule`.

    Raises:
        TemplateSyntaxError: If the source is malformed.
        ConfigurationError: If a guard or permutation does not match its parameters.
    """

    return TemplateParser(source, path).parse()

def parse_template_file(path: str) -> TemplateModule:
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()

    return parse_template(source, path)
