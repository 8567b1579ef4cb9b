"""TypeScript/JavaScript fact analyzer."""

import logging
from typing import List, Optional, Tuple

from ..base import BaseFactAnalyzer
from ...models.analysis_models import Language, ASTNode
from ...models.fact_models import (
    ASTFact,
    ASTFactType,
    FunctionParameter,
    FunctionDetails,
    ImportDetails,
    ExportDetails,
    ClassDetails,
    CallDetails,
    TypeDetails,
)

logger = logging.getLogger(__name__)

MODULE_SCOPE = "<module>"

FUNCTION_DECLARATIONS = ("function_declaration", "generator_function_declaration")
FUNCTION_VALUES = (
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
)
CLASS_DECLARATIONS = ("class_declaration", "abstract_class_declaration", "class")
VARIABLE_DECLARATIONS = ("lexical_declaration", "variable_declaration")
TYPE_NAME_NODES = (
    "type_identifier",
    "identifier",
    "nested_type_identifier",
    "generic_type",
    "member_expression",
)


class TypeScriptFactAnalyzer(BaseFactAnalyzer):
    """
    Fact analyzer for TypeScript, TSX and JavaScript.

    PATTERN: Single recursive walk carrying scope (enclosing function/class)
    GOTCHA: JS and TS grammars differ in class heritage and field node names
    """

    def __init__(self, language: Language = Language.TYPESCRIPT):
        """Initialize TypeScript analyzer."""
        super().__init__(language)

    def supports(self, language: Language) -> bool:
        return language in (Language.TYPESCRIPT, Language.TSX, Language.JAVASCRIPT)

    async def extract_facts(self, file_path: str, ast: ASTNode) -> List[ASTFact]:
        """Extract functions, imports, exports, classes, calls and types."""
        facts: List[ASTFact] = []

        def visit(
            node: ASTNode,
            scope: str,
            class_name: Optional[str],
            exported: bool = False,
        ):
            node_type = node.node_type

            if node_type == "export_statement":
                self._handle_export(node, file_path, facts)
                for child in node.children:
                    visit(child, scope, class_name, exported=True)
                return

            if node_type == "import_statement":
                facts.extend(self._extract_imports(node, file_path))
                return

            if node_type in FUNCTION_DECLARATIONS:
                name = self._text(node.child_by_type("identifier"))
                if name:
                    facts.append(
                        self._function_fact(node, name, file_path, exported, None)
                    )
                self._visit_children(node, visit, name or scope, class_name)
                return

            if node_type in VARIABLE_DECLARATIONS:
                for declarator in node.children_by_type("variable_declarator"):
                    name = self._text(declarator.child_by_type("identifier"))
                    value = declarator.child_by_type(*FUNCTION_VALUES)
                    if name and value is not None:
                        facts.append(
                            self._function_fact(value, name, file_path, exported, None)
                        )
                        self._visit_children(value, visit, name, class_name)
                    else:
                        self._visit_children(declarator, visit, scope, class_name)
                return

            if node_type in CLASS_DECLARATIONS:
                name = self._text(node.child_by_type("type_identifier", "identifier"))
                if name:
                    facts.extend(self._extract_class(node, name, file_path, exported))
                    body = node.child_by_type("class_body")
                    if body is not None:
                        for member in body.children:
                            member_scope = scope
                            if member.node_type == "method_definition":
                                member_scope = self._member_name(member) or scope
                            visit(member, member_scope, name)
                    return

            if node_type == "method_definition":
                # Method facts are emitted with the class, only walk the body here
                self._visit_children(node, visit, scope, class_name)
                return

            if node_type == "interface_declaration":
                facts.append(self._extract_interface(node, file_path, exported))
                return

            if node_type == "type_alias_declaration":
                fact = self._extract_type_alias(node, file_path, exported)
                if fact:
                    facts.append(fact)
                return

            if node_type == "enum_declaration":
                fact = self._extract_enum(node, file_path, exported)
                if fact:
                    facts.append(fact)
                return

            if node_type in ("call_expression", "new_expression"):
                fact = self._extract_call(node, file_path, scope)
                if fact:
                    facts.append(fact)

            self._visit_children(node, visit, scope, class_name)

        visit(ast, MODULE_SCOPE, None)
        facts.sort(key=lambda f: (f.line, f.column))
        self.logger.debug(f"Extracted {len(facts)} facts from {file_path}")
        return facts

    @staticmethod
    def _visit_children(node: ASTNode, visit, scope: str, class_name: Optional[str]):
        for child in node.children:
            visit(child, scope, class_name)

    # Functions

    def _function_fact(
        self,
        node: ASTNode,
        name: str,
        file_path: str,
        exported: bool,
        class_name: Optional[str],
    ) -> ASTFact:
        details = FunctionDetails(
            parameters=self._extract_parameters(node),
            return_type=self._strip_annotation(
                self._text(node.child_by_type("type_annotation"))
            ),
            is_async=node.has_token("async"),
            is_exported=exported,
            class_name=class_name,
        )
        return self._make_fact(ASTFactType.FUNCTION_DEF, name, file_path, node, details)

    def _extract_parameters(self, node: ASTNode) -> List[FunctionParameter]:
        params_node = node.child_by_type("formal_parameters")
        if params_node is None:
            # Arrow function with a single bare parameter
            bare = node.child_by_type("identifier")
            if node.node_type == "arrow_function" and bare is not None:
                return [FunctionParameter(name=bare.text)]
            return []

        params = []
        for child in params_node.children:
            param = self._parameter_from_node(child)
            if param:
                params.append(param)
        return params

    def _parameter_from_node(self, node: ASTNode) -> Optional[FunctionParameter]:
        node_type = node.node_type

        if node_type in ("required_parameter", "optional_parameter"):
            pattern = next(
                (
                    c
                    for c in node.children
                    if c.metadata.get("is_named")
                    and c.node_type not in ("type_annotation", "accessibility_modifier")
                ),
                None,
            )
            if pattern is None:
                return None
            name = self._pattern_name(pattern)
            if name == "this":
                return None
            return FunctionParameter(
                name=name,
                type=self._strip_annotation(
                    self._text(node.child_by_type("type_annotation"))
                ),
                optional=node_type == "optional_parameter" or node.has_token("="),
            )

        if node_type in ("identifier", "object_pattern", "array_pattern", "rest_pattern"):
            return FunctionParameter(name=self._pattern_name(node))

        if node_type == "assignment_pattern":
            left = node.children[0] if node.children else None
            return FunctionParameter(
                name=self._pattern_name(left) if left else "param", optional=True
            )

        return None

    def _pattern_name(self, node: ASTNode) -> str:
        if node.node_type == "rest_pattern":
            inner = node.child_by_type("identifier")
            return self._text(inner) or "rest"
        if node.node_type in ("identifier", "this"):
            return node.text
        return self._text(node) or "param"

    # Classes

    def _member_name(self, node: ASTNode) -> Optional[str]:
        return self._text(
            node.child_by_type(
                "property_identifier",
                "private_property_identifier",
                "computed_property_name",
            )
        )

    def _extract_class(
        self, node: ASTNode, name: str, file_path: str, exported: bool
    ) -> List[ASTFact]:
        extends, implements = self._extract_heritage(node)
        methods: List[str] = []
        properties: List[str] = []
        method_facts: List[ASTFact] = []

        body = node.child_by_type("class_body")
        for member in body.children if body is not None else []:
            if member.node_type == "method_definition":
                member_name = self._member_name(member)
                if not member_name:
                    continue
                if member_name != "constructor":
                    methods.append(member_name)
                method_facts.append(
                    self._function_fact(member, member_name, file_path, False, name)
                )
            elif member.node_type in ("method_signature", "abstract_method_signature"):
                member_name = self._member_name(member)
                if member_name:
                    methods.append(member_name)
            elif member.node_type in ("public_field_definition", "field_definition"):
                member_name = self._member_name(member)
                if member_name:
                    properties.append(member_name)

        details = ClassDetails(
            extends=extends,
            implements=implements,
            methods=methods,
            properties=properties,
            is_exported=exported,
            is_abstract=node.node_type == "abstract_class_declaration",
        )
        class_fact = self._make_fact(ASTFactType.CLASS, name, file_path, node, details)
        return [class_fact] + method_facts

    def _extract_heritage(self, node: ASTNode) -> Tuple[Optional[str], List[str]]:
        heritage = node.child_by_type("class_heritage")
        if heritage is None:
            return None, []

        extends = None
        implements: List[str] = []

        extends_clause = heritage.child_by_type("extends_clause")
        if extends_clause is not None:
            target = next(
                (
                    c
                    for c in extends_clause.children
                    if c.metadata.get("is_named") and c.node_type != "type_arguments"
                ),
                None,
            )
            extends = self._text(target)
        elif heritage.has_token("extends"):
            # JavaScript grammar: `extends` followed directly by the expression
            target = next(
                (c for c in heritage.children if c.metadata.get("is_named")), None
            )
            extends = self._text(target)

        implements_clause = heritage.child_by_type("implements_clause")
        if implements_clause is not None:
            for child in implements_clause.children:
                if child.node_type == "generic_type":
                    implements.append(self._text(child.children[0]))
                elif child.node_type in TYPE_NAME_NODES:
                    implements.append(self._text(child))

        return extends, implements

    # Types

    def _extract_interface(
        self, node: ASTNode, file_path: str, exported: bool
    ) -> ASTFact:
        name = self._text(node.child_by_type("type_identifier")) or "<anonymous>"
        body = node.child_by_type("interface_body", "object_type")
        details = TypeDetails(
            kind="interface",
            properties=self._object_type_members(body),
            is_exported=exported,
        )
        return self._make_fact(ASTFactType.TYPE, name, file_path, node, details)

    def _extract_type_alias(
        self, node: ASTNode, file_path: str, exported: bool
    ) -> Optional[ASTFact]:
        name = self._text(node.child_by_type("type_identifier"))
        if not name:
            return None
        details = TypeDetails(
            kind="type_alias",
            properties=self._object_type_members(node.child_by_type("object_type")),
            is_exported=exported,
        )
        return self._make_fact(ASTFactType.TYPE, name, file_path, node, details)

    def _extract_enum(
        self, node: ASTNode, file_path: str, exported: bool
    ) -> Optional[ASTFact]:
        name = self._text(node.child_by_type("identifier"))
        if not name:
            return None
        members = []
        body = node.child_by_type("enum_body")
        for child in body.children if body is not None else []:
            if child.node_type in ("property_identifier", "string"):
                members.append(self._text(child).strip("'\""))
            elif child.node_type == "enum_assignment":
                member = child.child_by_type("property_identifier", "string")
                if member is not None:
                    members.append(self._text(member).strip("'\""))
        details = TypeDetails(kind="enum", members=members, is_exported=exported)
        return self._make_fact(ASTFactType.TYPE, name, file_path, node, details)

    def _object_type_members(self, body: Optional[ASTNode]) -> List[str]:
        if body is None:
            return []
        members = []
        for child in body.children:
            if child.node_type in ("property_signature", "method_signature"):
                member = child.child_by_type("property_identifier")
                if member is not None:
                    members.append(member.text)
        return members

    # Imports and exports

    def _string_value(self, node: Optional[ASTNode]) -> Optional[str]:
        if node is None:
            return None
        fragment = node.child_by_type("string_fragment")
        if fragment is not None:
            return fragment.text
        return self._text(node).strip("'\"`")

    def _extract_imports(self, node: ASTNode, file_path: str) -> List[ASTFact]:
        source = self._string_value(node.child_by_type("string"))
        if source is None:
            return []
        type_only = node.has_token("type")
        clause = node.child_by_type("import_clause")

        if clause is None:
            details = ImportDetails(source=source, is_type_only=type_only)
            return [self._make_fact(ASTFactType.IMPORT, source, file_path, node, details)]

        facts = []
        for child in clause.children:
            if child.node_type == "identifier":
                details = ImportDetails(
                    source=source,
                    imported_name="default",
                    is_default=True,
                    is_type_only=type_only,
                )
                facts.append(
                    self._make_fact(ASTFactType.IMPORT, child.text, file_path, child, details)
                )
            elif child.node_type == "namespace_import":
                local = self._text(child.child_by_type("identifier"))
                if local:
                    details = ImportDetails(
                        source=source,
                        imported_name="*",
                        is_namespace=True,
                        is_type_only=type_only,
                    )
                    facts.append(
                        self._make_fact(ASTFactType.IMPORT, local, file_path, child, details)
                    )
            elif child.node_type == "named_imports":
                for spec in child.children_by_type("import_specifier"):
                    names = spec.children_by_type("identifier")
                    if not names:
                        continue
                    details = ImportDetails(
                        source=source,
                        imported_name=names[0].text,
                        is_type_only=type_only or spec.has_token("type"),
                    )
                    facts.append(
                        self._make_fact(
                            ASTFactType.IMPORT, names[-1].text, file_path, spec, details
                        )
                    )
        return facts

    def _handle_export(self, node: ASTNode, file_path: str, facts: List[ASTFact]):
        is_default = node.has_token("default")
        source = self._string_value(node.child_by_type("string"))

        declaration = next(
            (
                c
                for c in node.children
                if c.node_type
                in FUNCTION_DECLARATIONS
                + CLASS_DECLARATIONS
                + VARIABLE_DECLARATIONS
                + ("interface_declaration", "type_alias_declaration", "enum_declaration")
            ),
            None,
        )

        if declaration is not None:
            for name, kind in self._declared_exports(declaration):
                details = ExportDetails(
                    kind="default" if is_default else kind, is_default=is_default
                )
                facts.append(
                    self._make_fact(ASTFactType.EXPORT, name, file_path, node, details)
                )
            return

        clause = node.child_by_type("export_clause")
        if clause is not None:
            for spec in clause.children_by_type("export_specifier"):
                names = [
                    c for c in spec.children if c.node_type in ("identifier", "string")
                ]
                if not names:
                    continue
                details = ExportDetails(
                    kind="re-export" if source else "variable",
                    is_default=names[-1].text == "default",
                    source=source,
                )
                facts.append(
                    self._make_fact(
                        ASTFactType.EXPORT,
                        self._text(names[-1]).strip("'\""),
                        file_path,
                        spec,
                        details,
                    )
                )
            return

        if source is not None:
            # export * from './module'
            details = ExportDetails(kind="re-export", source=source)
            facts.append(self._make_fact(ASTFactType.EXPORT, "*", file_path, node, details))
            return

        if is_default:
            target = node.child_by_type("identifier")
            name = target.text if target is not None else "default"
            details = ExportDetails(kind="default", is_default=True)
            facts.append(self._make_fact(ASTFactType.EXPORT, name, file_path, node, details))

    def _declared_exports(self, declaration: ASTNode) -> List[Tuple[str, str]]:
        node_type = declaration.node_type
        if node_type in FUNCTION_DECLARATIONS:
            name = self._text(declaration.child_by_type("identifier"))
            return [(name, "function")] if name else []
        if node_type in CLASS_DECLARATIONS:
            name = self._text(declaration.child_by_type("type_identifier", "identifier"))
            return [(name, "class")] if name else []
        if node_type == "interface_declaration":
            name = self._text(declaration.child_by_type("type_identifier"))
            return [(name, "interface")] if name else []
        if node_type == "type_alias_declaration":
            name = self._text(declaration.child_by_type("type_identifier"))
            return [(name, "type")] if name else []
        if node_type == "enum_declaration":
            name = self._text(declaration.child_by_type("identifier"))
            return [(name, "enum")] if name else []

        kind = "const" if declaration.has_token("const") else "variable"
        exports = []
        for declarator in declaration.children_by_type("variable_declarator"):
            name = self._text(declarator.child_by_type("identifier"))
            if name:
                exports.append((name, kind))
        return exports

    # Calls

    def _extract_call(
        self, node: ASTNode, file_path: str, scope: str
    ) -> Optional[ASTFact]:
        target = node.children[0] if node.children else None
        if node.node_type == "new_expression":
            target = node.child_by_type("identifier", "member_expression")
        if target is None:
            return None

        receiver = None
        if target.node_type == "identifier":
            callee = target.text
        elif target.node_type == "member_expression":
            prop = target.child_by_type("property_identifier", "private_property_identifier")
            if prop is None:
                return None
            callee = prop.text
            obj = target.children[0]
            if obj.node_type in ("identifier", "this", "member_expression"):
                receiver = obj.text
        else:
            return None

        arguments = node.child_by_type("arguments")
        argument_count = (
            sum(1 for c in arguments.children if c.metadata.get("is_named"))
            if arguments is not None
            else 0
        )
        details = CallDetails(
            caller=scope,
            callee=callee,
            receiver=receiver,
            argument_count=argument_count,
        )
        return self._make_fact(ASTFactType.CALL, callee, file_path, node, details)
