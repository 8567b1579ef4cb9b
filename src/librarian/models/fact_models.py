"""Data models for structural facts extracted from source code."""

from pydantic import BaseModel, Field
from typing import List, Optional, Union, Literal
from enum import Enum


class ASTFactType(str, Enum):
    """Kinds of structural facts."""

    FUNCTION_DEF = "function_def"
    IMPORT = "import"
    EXPORT = "export"
    CLASS = "class"
    CALL = "call"
    TYPE = "type"


class FunctionParameter(BaseModel):
    """A single declared parameter."""

    name: str = Field(description="Parameter name")
    type: Optional[str] = Field(default=None, description="Annotated type, if any")
    optional: bool = Field(default=False, description="Whether the parameter is optional")


class FunctionDetails(BaseModel):
    """Details for function and method definitions."""

    detail_type: Literal["function"] = "function"
    parameters: List[FunctionParameter] = Field(default_factory=list)
    return_type: Optional[str] = Field(default=None, description="Declared return type")
    is_async: bool = Field(default=False)
    is_exported: bool = Field(default=False)
    class_name: Optional[str] = Field(
        default=None, description="Enclosing class when this is a method"
    )


class ImportDetails(BaseModel):
    """Details for a single imported binding."""

    detail_type: Literal["import"] = "import"
    source: str = Field(description="Module specifier the binding comes from")
    imported_name: Optional[str] = Field(
        default=None, description="Name as exported by the source module"
    )
    is_default: bool = Field(default=False)
    is_namespace: bool = Field(default=False)
    is_type_only: bool = Field(default=False)


class ExportDetails(BaseModel):
    """Details for exported bindings."""

    detail_type: Literal["export"] = "export"
    kind: Literal[
        "function",
        "class",
        "interface",
        "type",
        "variable",
        "const",
        "enum",
        "default",
        "re-export",
    ] = Field(description="What kind of binding is exported")
    is_default: bool = Field(default=False)
    source: Optional[str] = Field(
        default=None, description="Source module for re-exports"
    )


class ClassDetails(BaseModel):
    """Details for class declarations."""

    detail_type: Literal["class"] = "class"
    extends: Optional[str] = Field(default=None, description="Parent class")
    implements: List[str] = Field(default_factory=list)
    methods: List[str] = Field(default_factory=list)
    properties: List[str] = Field(default_factory=list)
    is_exported: bool = Field(default=False)
    is_abstract: bool = Field(default=False)


class CallDetails(BaseModel):
    """Details for call sites."""

    detail_type: Literal["call"] = "call"
    caller: str = Field(description="Enclosing function or <module>")
    callee: str = Field(description="Called function name")
    receiver: Optional[str] = Field(
        default=None, description="Object the method was called on"
    )
    argument_count: int = Field(default=0)


class TypeDetails(BaseModel):
    """Details for interfaces, type aliases and enums."""

    detail_type: Literal["type"] = "type"
    kind: Literal["interface", "type_alias", "enum"]
    properties: List[str] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list)
    is_exported: bool = Field(default=False)


FactDetails = Union[
    FunctionDetails,
    ImportDetails,
    ExportDetails,
    ClassDetails,
    CallDetails,
    TypeDetails,
]


class ASTFact(BaseModel):
    """A structural fact derived from parsing a source file."""

    type: ASTFactType = Field(description="Fact kind")
    identifier: str = Field(description="Name the fact is about")
    file: str = Field(description="Source file path")
    line: int = Field(description="1-based line")
    column: int = Field(default=1, description="1-based column")
    details: FactDetails = Field(discriminator="detail_type")

    model_config = {"frozen": True}


class VerifiableFactType(str, Enum):
    """Normalized fact types used for comparisons."""

    FUNCTION_CALL = "function_call"
    IMPORT = "import"
    EXPORT = "export"
    TYPE_DEF = "type_def"
    VARIABLE_DEF = "variable_def"
    INHERITANCE = "inheritance"
    IMPLEMENTATION = "implementation"


class FactLocation(BaseModel):
    """Location of a fact in the repository."""

    file: str
    line: int
    column: int = 1


class VerifiableFact(BaseModel):
    """Comparison-friendly fact with a stable id."""

    fact_id: str = Field(description="Stable unique id")
    fact_type: VerifiableFactType
    location: FactLocation
    content: str = Field(description="Source snippet starting at the fact line")
    verifiable: bool = Field(default=True)
    confidence: float = Field(ge=0.0, le=1.0)


class FactVerificationResult(BaseModel):
    """Outcome of re-checking a fact against the file system."""

    verified: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = Field(description="Reason code, e.g. file_not_found")
    actual_content: Optional[str] = None


class FactMatch(BaseModel):
    """An expected/actual pair that was matched."""

    expected: VerifiableFact
    actual: VerifiableFact
    score: float


class FactComparisonResult(BaseModel):
    """Precision/recall comparison between two fact sets."""

    total_expected: int
    total_actual: int
    matched: int
    missing: int
    extra: int
    precision: float
    recall: float
    f1_score: float
    matches: List[FactMatch] = Field(default_factory=list)
    missing_facts: List[VerifiableFact] = Field(default_factory=list)
    extra_facts: List[VerifiableFact] = Field(default_factory=list)
