# Copyright 2025 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""
Template processing for prompts.

Three engines are supported:

* ``simple``: ``{variable}`` placeholders replaced by plain string substitution.
* ``advanced``: Jinja2 rendered in a sandbox with undefined variables treated as errors.
* ``jinja``: plain Jinja2.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jinja2 import Environment, StrictUndefined, TemplateError, TemplateSyntaxError, meta, nodes
from jinja2.sandbox import SandboxedEnvironment

from vertexai_preview.config import Config
from .errors import InvalidTemplateError, MissingVariablesError
from .models import (
    ApplyTemplateResponse,
    TemplateAnalysis,
    TemplateEngine,
    TemplateValidationResult,
    ValidationMode,
)

SIMPLE_VARIABLE_PATTERN = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}")
BRACED_PATTERN = re.compile(r"\{([^}]*)\}")
VARIABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

MAX_RECOMMENDED_VARIABLES = 10
MAX_RECOMMENDED_LENGTH = 1000


def _jinja_environment(engine: TemplateEngine) -> Environment:
    if engine == TemplateEngine.ADVANCED:
        return SandboxedEnvironment(undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True)
    return Environment(trim_blocks=True, lstrip_blocks=True)


def _unique(names) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


class TemplateProcessor:
    """
    Extracts, validates and substitutes template variables.

    Args:
        engine (TemplateEngine): Template syntax. Defaults to ``simple``.
        mode (ValidationMode): Validation strictness. Defaults to ``warn``.

    Example:
        ```python
        processor = TemplateProcessor()
        processor.extract_variables("Hello {name}, welcome to {place}")  # ["name", "place"]
        processor.apply_variables("Hello {name}", {"name": "Ada"}).content  # "Hello Ada"
        ```
    """

    def __init__(self, engine: TemplateEngine = TemplateEngine.SIMPLE, mode: ValidationMode = ValidationMode.WARN):
        self.engine = TemplateEngine(engine)
        self.mode = ValidationMode(mode)
        self._env = None if self.engine == TemplateEngine.SIMPLE else _jinja_environment(self.engine)

    @property
    def environment(self) -> Optional[Environment]:
        return self._env

    def extract_variables(self, template_text: str) -> List[str]:
        """Variable names in order of first appearance, without duplicates."""
        if self.engine == TemplateEngine.SIMPLE:
            return _unique(SIMPLE_VARIABLE_PATTERN.findall(template_text))
        return self._extract_jinja_variables(template_text)

    def _extract_jinja_variables(self, template_text: str) -> List[str]:
        try:
            ast = self._env.parse(template_text)
        except TemplateSyntaxError:
            return []

        undeclared = meta.find_undeclared_variables(ast)
        # Tree order follows the template source, so literal text never shifts a variable.
        ordered = _unique(node.name for node in ast.find_all(nodes.Name) if node.name in undeclared)
        return ordered + sorted(undeclared.difference(ordered))

    def validate_template(self, template_text: str, declared_vars: Optional[List[str]] = None):
        """
        Raises:
            InvalidTemplateError: If the template fails validation.
        """
        result = self.validate_template_detailed(template_text, declared_vars)
        if not result.is_valid:
            raise InvalidTemplateError(template_text, result.errors)

    def validate_template_detailed(
        self, template_text: str, declared_vars: Optional[List[str]] = None
    ) -> TemplateValidationResult:
        """
        Compare detected variables with the declared ones and check template syntax.

        Undeclared variables are errors in strict mode and warnings in warn mode.
        Unused declared variables are reported as warnings in strict mode.
        """
        declared_vars = declared_vars or []
        result = TemplateValidationResult()

        detected = self.extract_variables(template_text)
        result.detected_variables = detected
        declared = set(declared_vars)
        detected_set = set(detected)

        for name in detected:
            if name in declared:
                continue
            result.undeclared_variables.append(name)
            if self.mode == ValidationMode.STRICT:
                result.errors.append(f"undeclared variable: {name}")
                result.is_valid = False
            elif self.mode == ValidationMode.WARN:
                result.warnings.append(f"undeclared variable: {name}")

        for name in declared_vars:
            if name in detected_set:
                continue
            result.unused_variables.append(name)
            if self.mode == ValidationMode.STRICT:
                result.warnings.append(f"unused declared variable: {name}")

        syntax_error = self._syntax_error(template_text)
        if syntax_error:
            result.errors.append(syntax_error)
            result.is_valid = False

        return result

    def _syntax_error(self, template_text: str) -> Optional[str]:
        if self.engine == TemplateEngine.SIMPLE:
            return self._validate_simple_template(template_text)

        try:
            self._env.parse(template_text)
        except TemplateSyntaxError as e:
            return f"template syntax error at line {e.lineno}: {e.message}"
        return None

    @staticmethod
    def _validate_simple_template(template_text: str) -> Optional[str]:
        depth = 0
        for i, char in enumerate(template_text):
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth < 0:
                    return f"unmatched closing brace at position {i}"
        if depth > 0:
            return "unmatched opening brace(s)"

        for name in BRACED_PATTERN.findall(template_text):
            if name == "":
                return "empty variable name in template"
            if not VARIABLE_NAME_PATTERN.match(name):
                return f"invalid variable name: {name}"
        return None

    def apply_variables(self, template_text: str, variables: Optional[Dict[str, Any]]) -> ApplyTemplateResponse:
        """
        Render a template with the given variables.

        Returns:
            ApplyTemplateResponse: Rendered content plus applied, missing and unused variables.

        Raises:
            MissingVariablesError: In strict mode when a template variable has no value.
                The partial response is attached to the error.
            InvalidTemplateError: If a Jinja template cannot be parsed or rendered.
        """
        variables = variables or {}
        if self.engine == TemplateEngine.SIMPLE:
            return self._apply_simple_variables(template_text, variables)
        return self._apply_jinja_variables(template_text, variables)

    def _apply_simple_variables(self, template_text: str, variables: Dict[str, Any]) -> ApplyTemplateResponse:
        response = ApplyTemplateResponse()
        content = template_text

        for name in self.extract_variables(template_text):
            if name in variables:
                content = content.replace("{" + name + "}", str(variables[name]))
                response.applied_variables[name] = variables[name]
            else:
                response.missing_variables.append(name)

        response.unused_variables = [name for name in variables if name not in response.applied_variables]
        response.content = content

        if response.missing_variables and self.mode == ValidationMode.STRICT:
            raise MissingVariablesError(response.missing_variables, response)
        return response

    def _apply_jinja_variables(self, template_text: str, variables: Dict[str, Any]) -> ApplyTemplateResponse:
        try:
            template = self._env.from_string(template_text)
        except TemplateSyntaxError as e:
            raise InvalidTemplateError(template_text, [f"template syntax error at line {e.lineno}: {e.message}"]) from e

        return render_compiled(template, template_text, self.extract_variables(template_text), variables, self.mode)


def render_compiled(template, template_text: str, detected: List[str], variables: Dict[str, Any], mode: ValidationMode):
    """Render a parsed Jinja template and report variable usage."""
    response = ApplyTemplateResponse(
        applied_variables={k: v for k, v in variables.items() if k in detected},
        missing_variables=[name for name in detected if name not in variables],
        unused_variables=[name for name in variables if name not in detected],
    )
    if response.missing_variables and mode == ValidationMode.STRICT:
        raise MissingVariablesError(response.missing_variables, response)

    try:
        response.content = template.render(**variables)
    except TemplateError as e:
        raise InvalidTemplateError(template_text, [f"failed to render template: {e}"]) from e
    return response


@dataclass
class CompiledTemplate:
    """A template parsed once for repeated rendering."""

    original_template: str
    variables: List[str]
    engine: TemplateEngine
    compiled_at: datetime
    compiled: Any = field(default=None, repr=False)

    def execute(self, variables: Optional[Dict[str, Any]]) -> ApplyTemplateResponse:
        variables = variables or {}
        if self.engine == TemplateEngine.SIMPLE:
            processor = TemplateProcessor(TemplateEngine.SIMPLE, ValidationMode.WARN)
            return processor.apply_variables(self.original_template, variables)

        if self.compiled is None:
            raise InvalidTemplateError(self.original_template, ["template not properly compiled"])
        return render_compiled(self.compiled, self.original_template, self.variables, variables, ValidationMode.WARN)


class TemplateCompiler:
    """Compiles templates once and caches them by template text."""

    def __init__(self, processor: Optional[TemplateProcessor] = None):
        self.processor = processor or TemplateProcessor()
        self._cache: Dict[str, CompiledTemplate] = {}
        self._lock = threading.Lock()

    def compile(self, template_text: str) -> CompiledTemplate:
        """
        Raises:
            InvalidTemplateError: If a Jinja template does not parse.
        """
        with self._lock:
            cached = self._cache.get(template_text)
            if cached is not None:
                return cached

        compiled = CompiledTemplate(
            original_template=template_text,
            variables=self.processor.extract_variables(template_text),
            engine=self.processor.engine,
            compiled_at=datetime.now(timezone.utc),
        )
        if self.processor.engine != TemplateEngine.SIMPLE:
            try:
                compiled.compiled = self.processor.environment.from_string(template_text)
            except TemplateSyntaxError as e:
                raise InvalidTemplateError(
                    template_text, [f"failed to compile template: line {e.lineno}: {e.message}"]
                ) from e

        with self._lock:
            self._cache.setdefault(template_text, compiled)
            return self._cache[template_text]

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self):
        with self._lock:
            self._cache.clear()


class TemplateAnalyzer:
    """Scores template complexity and suggests improvements."""

    def __init__(self, processor: Optional[TemplateProcessor] = None, config: Optional[Config] = None):
        self.processor = processor or TemplateProcessor()
        self.config = config or Config()

    def analyze(self, template_text: str, declared_vars: Optional[List[str]] = None) -> TemplateAnalysis:
        variables = self.processor.extract_variables(template_text)
        declared = variables if declared_vars is None else declared_vars
        validation = self.processor.validate_template_detailed(template_text, declared)

        complexity = len(template_text) / 100.0 + len(variables) * 2.0
        analysis = TemplateAnalysis(
            template_length=len(template_text),
            variable_count=len(variables),
            variables=variables,
            complexity=complexity,
            readability=100.0 / (1.0 + complexity / 10.0),
            validation_result=validation,
            recommendations=self._recommendations(template_text, variables, validation),
        )
        self.config.logger.debug(
            f"analyze called | length: {analysis.template_length}, variables: {analysis.variable_count}, complexity: {complexity:.2f}"
        )
        return analysis

    @staticmethod
    def _recommendations(template_text: str, variables: List[str], validation: TemplateValidationResult) -> List[str]:
        recommendations = []
        if len(variables) > MAX_RECOMMENDED_VARIABLES:
            recommendations.append("Consider reducing the number of variables for better maintainability")
        if len(template_text) > MAX_RECOMMENDED_LENGTH:
            recommendations.append("Template is quite long; consider breaking it into smaller, reusable components")
        if validation.undeclared_variables:
            recommendations.append("Declare all template variables for better documentation and validation")
        if validation.unused_variables:
            recommendations.append("Remove unused declared variables to keep the template clean")
        return recommendations
