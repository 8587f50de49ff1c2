"""
Base classes for the tool calling system.

Every vault command is a Tool subclass with a declarative ToolDefinition.
The definition doubles as the Gemini function declaration and as the
source of the pydantic record that arguments are validated into before
the handler runs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

if TYPE_CHECKING:
    from hermes_voice.tools.context import ToolExecutionContext


class ToolCategory(Enum):
    """Category of tool, used for grouping in logs and prompts."""
    FILES = "files"        # Reads or mutates vault files and folders
    SEARCH = "search"      # Vault-wide search and replace
    SESSION = "session"    # Conversation control


class ToolArgumentError(ValueError):
    """Tool arguments failed validation at the dispatch boundary."""


_PYTHON_TYPES = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
}


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "integer", "boolean", "number", "array", "object"
    description: str = ""
    required: bool = False
    enum: Optional[List[str]] = None
    default: Optional[Any] = None
    items_type: Optional[str] = None  # element type for arrays

    def to_google_schema(self) -> Dict[str, Any]:
        """Gemini function declarations use OpenAPI-style upper-case type names."""
        result: Dict[str, Any] = {"type": self.type.upper()}
        if self.description:
            result["description"] = self.description
        if self.enum:
            result["enum"] = list(self.enum)
        if self.type == "array":
            result["items"] = {"type": (self.items_type or "string").upper()}
        return result

    def python_type(self) -> Any:
        if self.enum:
            return Literal[tuple(self.enum)]
        return _PYTHON_TYPES[self.type]


@dataclass
class ToolDefinition:
    """
    Provider-agnostic tool definition.

    ``instruction`` is the guidance appended to the system instruction so the
    model knows when to reach for the tool.
    """
    name: str
    description: str
    category: ToolCategory
    parameters: List[ToolParameter] = field(default_factory=list)
    instruction: str = ""

    def to_google_schema(self) -> Dict[str, Any]:
        """
        Convert to a Gemini function declaration.

        {
            "name": "read_file",
            "description": "...",
            "parameters": {"type": "OBJECT", "properties": {...}, "required": [...]}
        }

        Parameterless tools omit "parameters" entirely.
        """
        declaration: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
        }
        if self.parameters:
            declaration["parameters"] = {
                "type": "OBJECT",
                "properties": {p.name: p.to_google_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            }
        return declaration

    def to_prompt_text(self) -> str:
        if self.instruction:
            return f"- {self.name}: {self.instruction}"
        return f"- {self.name}: {self.description}"

    def build_args_model(self) -> Type[BaseModel]:
        """Create the pydantic record arguments are validated into."""
        fields: Dict[str, Any] = {}
        for param in self.parameters:
            py_type = param.python_type()
            if param.required:
                fields[param.name] = (py_type, ...)
            else:
                fields[param.name] = (Optional[py_type], param.default)
        model_name = "".join(part.title() for part in self.name.split("_")) + "Args"
        return create_model(model_name, __config__=ConfigDict(extra="ignore"), **fields)


class Tool(ABC):
    """
    Abstract base class for all tools.

    Subclasses implement:
    - definition property: Returns ToolDefinition with metadata
    - execute method: Performs the action and returns a JSON-serializable result
    """

    _args_model: Optional[Type[BaseModel]] = None

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return tool definition with metadata."""

    @abstractmethod
    async def execute(self, args: BaseModel, context: "ToolExecutionContext") -> Any:
        """
        Execute the tool with validated arguments.

        Raises:
            ValueError: If arguments are semantically invalid
            VaultError: If the document store operation fails
        """

    @property
    def args_model(self) -> Type[BaseModel]:
        if self._args_model is None:
            self._args_model = self.definition.build_args_model()
        return self._args_model

    def validate_parameters(self, parameters: Dict[str, Any]) -> BaseModel:
        """
        Validate raw model-supplied arguments into the tool's argument record.

        Raises:
            ToolArgumentError: naming the offending fields
        """
        try:
            return self.args_model.model_validate(parameters or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc']) or 'args'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolArgumentError(f"Invalid arguments for {self.definition.name}: {problems}") from e
