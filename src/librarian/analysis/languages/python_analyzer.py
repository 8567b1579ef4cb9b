"""Python fact analyzer."""

import logging
from typing import List, Optional

from ..base import BaseFactAnalyzer
from ...models.analysis_models import Language, ASTNode
from ...models.fact_models import (
    ASTFact,
    ASTFactType,
    FunctionParameter,
    FunctionDetails,
    ImportDetails,
    ClassDetails,
    CallDetails,
)

logger = logging.getLogger(__name__)

MODULE_SCOPE = "<module>"
IMPLICIT_PARAMETERS = ("self", "cls")


class PythonFactAnalyzer(BaseFactAnalyzer):
    """
    Fact analyzer for Python sources.

    PATTERN: BaseFactAnalyzer inheritance for language-specific analysis
    CRITICAL: Extract Python-specific constructs (decorators, async, etc.)
    GOTCHA: Python has no export statement; public module-level names count as exported
    """

    def __init__(self):
        """Initialize Python analyzer."""
        super().__init__(Language.PYTHON)

    def supports(self, language: Language) -> bool:
        return language == Language.PYTHON

    async def extract_facts(self, file_path: str, ast: ASTNode) -> List[ASTFact]:
        """
        Extract function, class, import and call facts from a Python AST.

        Args:
            file_path: Path recorded on each fact
            ast: Parsed AST

        Returns:
            Facts in document order
        """
        facts: List[ASTFact] = []

        def visit(node: ASTNode, scope: str, class_name: Optional[str]):
            node_type = node.node_type

            if node_type == "function_definition":
                name = self._text(node.child_by_type("identifier"))
                if name:
                    facts.append(self._function_fact(node, name, file_path, scope, class_name))
                for child in node.children:
                    visit(child, name or scope, None)
                return

            if node_type == "class_definition":
                name = self._text(node.child_by_type("identifier"))
                if name:
                    facts.append(self._class_fact(node, name, file_path, scope))
                for child in node.children:
                    visit(child, scope, name)
                return

            if node_type in ("import_statement", "import_from_statement"):
                facts.extend(self._extract_imports(node, file_path))
                return

            if node_type == "call":
                fact = self._extract_call(node, file_path, scope)
                if fact:
                    facts.append(fact)

            for child in node.children:
                visit(child, scope, class_name)

        visit(ast, MODULE_SCOPE, None)
        facts.sort(key=lambda f: (f.line, f.column))
        self.logger.debug(f"Extracted {len(facts)} facts from {file_path}")
        return facts

    def _function_fact(
        self,
        node: ASTNode,
        name: str,
        file_path: str,
        scope: str,
        class_name: Optional[str],
    ) -> ASTFact:
        return_type = None
        children = node.children
        for index, child in enumerate(children):
            if child.node_type == "->" and index + 1 < len(children):
                return_type = self._text(children[index + 1])

        details = FunctionDetails(
            parameters=self._extract_parameters(node, is_method=class_name is not None),
            return_type=return_type,
            is_async=node.has_token("async"),
            is_exported=scope == MODULE_SCOPE
            and class_name is None
            and not name.startswith("_"),
            class_name=class_name,
        )
        return self._make_fact(ASTFactType.FUNCTION_DEF, name, file_path, node, details)

    def _extract_parameters(self, node: ASTNode, is_method: bool) -> List[FunctionParameter]:
        params_node = node.child_by_type("parameters")
        if params_node is None:
            return []

        params = []
        for child in params_node.children:
            param = None
            if child.node_type == "identifier":
                param = FunctionParameter(name=child.text)
            elif child.node_type == "typed_parameter":
                inner = child.child_by_type(
                    "identifier", "list_splat_pattern", "dictionary_splat_pattern"
                )
                param = FunctionParameter(
                    name=self._text(inner) or "param",
                    type=self._text(child.child_by_type("type")),
                )
            elif child.node_type in ("default_parameter", "typed_default_parameter"):
                param = FunctionParameter(
                    name=self._text(child.child_by_type("identifier")) or "param",
                    type=self._text(child.child_by_type("type")),
                    optional=True,
                )
            elif child.node_type in ("list_splat_pattern", "dictionary_splat_pattern"):
                param = FunctionParameter(name=child.text, optional=True)

            if param is None:
                continue
            if is_method and not params and param.name in IMPLICIT_PARAMETERS:
                continue
            params.append(param)
        return params

    def _class_fact(
        self, node: ASTNode, name: str, file_path: str, scope: str
    ) -> ASTFact:
        bases: List[str] = []
        arguments = node.child_by_type("argument_list")
        for child in arguments.children if arguments is not None else []:
            if child.node_type in ("identifier", "attribute", "subscript"):
                bases.append(child.text)
        bases = [b for b in bases if b != "object"]

        methods: List[str] = []
        properties: List[str] = []
        body = node.child_by_type("block")
        for member in body.children if body is not None else []:
            definition = member
            if member.node_type == "decorated_definition":
                definition = member.child_by_type("function_definition", "class_definition")
                if definition is None:
                    continue
            if definition.node_type == "function_definition":
                method_name = self._text(definition.child_by_type("identifier"))
                if method_name and method_name != "__init__":
                    methods.append(method_name)
                if method_name == "__init__":
                    properties.extend(self._self_assignments(definition))
            elif definition.node_type == "expression_statement":
                assignment = definition.child_by_type("assignment")
                target = assignment.children[0] if assignment and assignment.children else None
                if target is not None and target.node_type == "identifier":
                    properties.append(target.text)

        details = ClassDetails(
            extends=bases[0] if bases else None,
            implements=bases[1:],
            methods=methods,
            properties=list(dict.fromkeys(properties)),
            is_exported=scope == MODULE_SCOPE and not name.startswith("_"),
            is_abstract="ABC" in bases or "abc.ABC" in bases,
        )
        return self._make_fact(ASTFactType.CLASS, name, file_path, node, details)

    def _self_assignments(self, init: ASTNode) -> List[str]:
        names = []

        def visit(node: ASTNode):
            if node.node_type == "assignment" and node.children:
                target = node.children[0]
                if target.node_type == "attribute" and target.text.startswith("self."):
                    names.append(target.text[len("self."):])
            for child in node.children:
                visit(child)

        visit(init)
        return names

    def _extract_imports(self, node: ASTNode, file_path: str) -> List[ASTFact]:
        facts = []

        if node.node_type == "import_statement":
            for child in node.children:
                if child.node_type == "dotted_name":
                    source = child.text
                    local = source
                elif child.node_type == "aliased_import":
                    source = self._text(child.child_by_type("dotted_name"))
                    local = self._text(child.child_by_type("identifier")) or source
                else:
                    continue
                details = ImportDetails(source=source, imported_name="*", is_namespace=True)
                facts.append(self._make_fact(ASTFactType.IMPORT, local, file_path, child, details))
            return facts

        source = None
        seen_import = False
        for child in node.children:
            if child.node_type == "import":
                seen_import = True
                continue
            if not seen_import:
                if child.node_type in ("dotted_name", "relative_import"):
                    source = child.text
                continue
            if source is None:
                break
            if child.node_type == "dotted_name":
                details = ImportDetails(source=source, imported_name=child.text)
                facts.append(self._make_fact(ASTFactType.IMPORT, child.text, file_path, child, details))
            elif child.node_type == "aliased_import":
                imported = self._text(child.child_by_type("dotted_name"))
                local = self._text(child.child_by_type("identifier")) or imported
                details = ImportDetails(source=source, imported_name=imported)
                facts.append(self._make_fact(ASTFactType.IMPORT, local, file_path, child, details))
            elif child.node_type == "wildcard_import":
                details = ImportDetails(source=source, imported_name="*", is_namespace=True)
                facts.append(self._make_fact(ASTFactType.IMPORT, "*", file_path, child, details))
        return facts

    def _extract_call(self, node: ASTNode, file_path: str, scope: str) -> Optional[ASTFact]:
        target = node.children[0] if node.children else None
        if target is None:
            return None

        receiver = None
        if target.node_type == "identifier":
            callee = target.text
        elif target.node_type == "attribute":
            identifiers = target.children_by_type("identifier")
            if not identifiers:
                return None
            callee = identifiers[-1].text
            obj = target.children[0]
            if obj.node_type in ("identifier", "attribute"):
                receiver = obj.text
        else:
            return None

        arguments = node.child_by_type("argument_list")
        argument_count = (
            sum(1 for c in arguments.children if c.metadata.get("is_named"))
            if arguments is not None
            else 0
        )
        details = CallDetails(
            caller=scope, callee=callee, receiver=receiver, argument_count=argument_count
        )
        return self._make_fact(ASTFactType.CALL, callee, file_path, node, details)
