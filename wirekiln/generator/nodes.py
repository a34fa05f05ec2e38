"""Structured code nodes produced by the emission engine.

The serializer handlers never produce target-language text. They build trees
of the nodes below, which a language-specific printer turns into source code.
Nesting (loop and guard bodies) is expressed by the tree, not by indentation.
"""

from dataclasses import dataclass

from .types import FieldSpec, SerializerKind

# Expressions


@dataclass(frozen=True)
class Literal:
    """A constant: number, bool, string or None."""

    value: int | float | bool | str | None


@dataclass(frozen=True)
class Var:
    """A local variable introduced by generated code."""

    name: str


@dataclass(frozen=True)
class FieldRef:
    """A field of the record being written or read."""

    name: str


@dataclass(frozen=True)
class LengthOf:
    """Number of elements in a container value."""

    value: "Expr"


@dataclass(frozen=True)
class ReadValue:
    """Read one primitive or string from the buffer."""

    kind: SerializerKind


@dataclass(frozen=True)
class ReadLength:
    """Read a container length, checked against the safety bound."""


@dataclass(frozen=True)
class ReadPacket:
    """Read a nested record through its protocol's own routine."""

    protocol_id: int


@dataclass(frozen=True)
class NewContainer:
    """An empty container of the given kind."""

    kind: SerializerKind


Expr = Literal | Var | FieldRef | LengthOf | ReadValue | ReadLength | ReadPacket | NewContainer


# Statements


@dataclass(frozen=True)
class WriteValue:
    """Write one primitive or string onto the buffer."""

    kind: SerializerKind
    value: Expr


@dataclass(frozen=True)
class WriteLength:
    """Write a container length, checked against the safety bound."""

    value: Expr


@dataclass(frozen=True)
class WritePacket:
    """Write a nested record through its protocol's own routine."""

    protocol_id: int
    value: Expr


@dataclass(frozen=True)
class Assign:
    target: Var | FieldRef
    value: Expr


@dataclass(frozen=True)
class ForEach:
    """Iterate over the elements of a list or set."""

    target: Var
    iterable: Expr
    body: tuple["Stmt", ...]


@dataclass(frozen=True)
class ForEachEntry:
    """Iterate over the key/value pairs of a map."""

    key: Var
    value: Var
    mapping: Expr
    body: tuple["Stmt", ...]


@dataclass(frozen=True)
class Repeat:
    """Run the body count times."""

    count: Expr
    body: tuple["Stmt", ...]


@dataclass(frozen=True)
class AddElement:
    """Append (array/list) or add (set) an element to a container."""

    container: Var
    kind: SerializerKind
    value: Expr


@dataclass(frozen=True)
class PutEntry:
    container: Var
    key: Expr
    value: Expr


@dataclass(frozen=True)
class ReserveMarker:
    """Remember the write position and reserve the 4-byte length marker."""

    position: Var
    predicted_length: int


@dataclass(frozen=True)
class PatchMarker:
    """Pad up to the predicted length and patch the reserved marker."""

    position: Var
    predicted_length: int


@dataclass(frozen=True)
class CompatibleGuard:
    """Run the body only if the record still holds min_size unread bytes."""

    body: tuple["Stmt", ...]
    min_size: int


Stmt = (
    WriteValue
    | WriteLength
    | WritePacket
    | Assign
    | ForEach
    | ForEachEntry
    | Repeat
    | AddElement
    | PutEntry
    | ReserveMarker
    | PatchMarker
    | CompatibleGuard
)


# Declarations


@dataclass(frozen=True)
class FieldDecl:
    """Declare a record field with its default value."""

    spec: FieldSpec
    default: Expr


@dataclass
class Names:
    """Allocates unique temporary names within one generated unit."""

    index: int = 0

    def new(self, prefix: str) -> Var:
        var = Var(f"{prefix}{self.index}")
        self.index += 1
        return var
