"""Function declarations offered to the model."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolParameter:
    name: str
    type: str  # "string" | "integer" | "boolean" | "number"
    description: str
    required: bool = True


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def to_gemini_schema(self) -> dict:
        """Convert to Gemini function declaration format."""
        properties = {}
        required = []
        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type, "description": param.description}
            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        }


GENERATE_IMAGE = ToolDefinition(
    name="generate_image",
    description=(
        "Create an image for the user. Call this only when the user explicitly asks "
        "you to draw, generate, create or show a picture."
    ),
    parameters=[
        ToolParameter(
            name="prompt",
            type="string",
            description="A detailed visual description of the image, including subject, style, lighting and mood",
        ),
    ],
)
