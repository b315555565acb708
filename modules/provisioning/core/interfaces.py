"""
Core types and interfaces for the provisioning module.

Templates, their configuration and the immutable rendered instances
produced from them. Dynamic-field kinds and hashing algorithms are
closed enums; everything that consumes them dispatches exhaustively.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from modules.provisioning.core.exceptions import ValidationException


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==============================================================================
# ENUMS
# ==============================================================================

class HashingAlgorithm(str, Enum):
    """One-way transform applied to generated values before storage"""
    NONE = "none"
    SHA512 = "sha512"
    YESCRYPT = "yescrypt"

    @classmethod
    def parse(cls, value: Any) -> "HashingAlgorithm":
        """
        Parse a wire value into an algorithm.

        Raises:
            ValidationException: If the algorithm is not supported
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(a.value for a in cls)
            raise ValidationException(
                f"Unsupported hashing algorithm '{value}'. Supported: {supported}"
            )


class GeneratorKind(str, Enum):
    """Kinds of dynamic field generators"""
    ALPHANUMERIC = "alphanumeric"
    PASSPHRASE = "passphrase"

    @classmethod
    def parse(cls, value: Any) -> "GeneratorKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(k.value for k in cls)
            raise ValidationException(
                f"Unsupported dynamic field type '{value}'. Supported: {supported}"
            )


# ==============================================================================
# CONFIGURATION TYPES
# ==============================================================================

@dataclass(frozen=True)
class DynamicFieldSpec:
    """
    A value generated by the system on first render.

    `length` is a character count for alphanumeric fields and a word
    count for passphrases. `hashing_algorithm` overrides the
    configuration-wide algorithm for this field when set.
    """
    field_name: str
    kind: GeneratorKind
    length: int
    hashing_algorithm: Optional[HashingAlgorithm] = None

    def effective_algorithm(self, default: HashingAlgorithm) -> HashingAlgorithm:
        return self.hashing_algorithm or default

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "field_name": self.field_name,
            "type": self.kind.value,
            "length": self.length,
        }
        if self.hashing_algorithm is not None:
            data["hashing_algorithm"] = self.hashing_algorithm.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DynamicFieldSpec":
        """
        Build a field from its wire form.

        Accepts `type` or `kind`, and `length` or `word_count`.

        Raises:
            ValidationException: If the field is malformed
        """
        if not isinstance(data, dict):
            raise ValidationException(f"Dynamic field must be an object, got {type(data).__name__}")

        field_name = data.get("field_name")
        if not isinstance(field_name, str) or not field_name.strip():
            raise ValidationException("Dynamic field requires a non-empty 'field_name'")

        kind_value = data.get("type", data.get("kind"))
        if kind_value is None:
            raise ValidationException(f"Dynamic field '{field_name}' requires a 'type'")
        kind = GeneratorKind.parse(kind_value)

        length = data.get("length", data.get("word_count"))
        if isinstance(length, bool) or not isinstance(length, int):
            raise ValidationException(f"Dynamic field '{field_name}' requires an integer 'length'")
        if length <= 0:
            raise ValidationException(f"Dynamic field '{field_name}' length must be positive, got {length}")

        hashing = data.get("hashing_algorithm")
        return cls(
            field_name=field_name.strip(),
            kind=kind,
            length=length,
            hashing_algorithm=HashingAlgorithm.parse(hashing) if hashing is not None else None,
        )


@dataclass
class TemplateConfiguration:
    """
    Per-template rendering configuration.

    An empty `id_field` means renders are never cached.
    """
    id_field: str = ""
    dynamic_fields: List[DynamicFieldSpec] = field(default_factory=list)
    hashing_algorithm: HashingAlgorithm = HashingAlgorithm.NONE
    default_values: Dict[str, Any] = field(default_factory=dict)

    @property
    def caching_enabled(self) -> bool:
        return bool(self.id_field)

    def identity_value(self, request_params: Dict[str, Any]) -> Optional[str]:
        """Return the cache identity for a request, or None when it cannot be cached."""
        if not self.caching_enabled:
            return None
        value = request_params.get(self.id_field)
        if value is None:
            return None
        return str(value)

    def validate(self) -> None:
        """
        Validate a configuration before it replaces the stored one.

        Raises:
            ValidationException: On the first problem found
        """
        if not isinstance(self.id_field, str) or not self.id_field.strip():
            raise ValidationException("id_field must be a non-empty string")

        if not isinstance(self.hashing_algorithm, HashingAlgorithm):
            raise ValidationException(f"Unsupported hashing algorithm '{self.hashing_algorithm}'")

        seen = set()
        for spec in self.dynamic_fields:
            if not isinstance(spec, DynamicFieldSpec):
                raise ValidationException("dynamic_fields must contain DynamicFieldSpec entries")
            if not isinstance(spec.field_name, str) or not spec.field_name.strip():
                raise ValidationException("Dynamic field requires a non-empty 'field_name'")
            if not isinstance(spec.kind, GeneratorKind):
                raise ValidationException(
                    f"Unsupported dynamic field type '{spec.kind}' for '{spec.field_name}'"
                )
            if spec.hashing_algorithm is not None and not isinstance(spec.hashing_algorithm, HashingAlgorithm):
                raise ValidationException(
                    f"Unsupported hashing algorithm '{spec.hashing_algorithm}' for '{spec.field_name}'"
                )
            if isinstance(spec.length, bool) or not isinstance(spec.length, int):
                raise ValidationException(f"Dynamic field '{spec.field_name}' requires an integer 'length'")
            if spec.length <= 0:
                raise ValidationException(
                    f"Dynamic field '{spec.field_name}' length must be positive, got {spec.length}"
                )
            if spec.field_name in seen:
                raise ValidationException(f"Duplicate dynamic field '{spec.field_name}'")
            seen.add(spec.field_name)

        if not isinstance(self.default_values, dict):
            raise ValidationException("default_values must be a mapping")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id_field": self.id_field,
            "dynamic_fields": [spec.to_dict() for spec in self.dynamic_fields],
            "hashing_algorithm": self.hashing_algorithm.value,
            "default_values": self.default_values,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateConfiguration":
        """
        Parse a configuration from its wire form.

        Does not call validate(); stored configurations (including the
        empty default) are loaded through here too.
        """
        if not isinstance(data, dict):
            raise ValidationException("Configuration must be an object")

        dynamic_fields = data.get("dynamic_fields") or []
        if not isinstance(dynamic_fields, list):
            raise ValidationException("dynamic_fields must be a list")

        default_values = data.get("default_values") or {}
        if not isinstance(default_values, dict):
            raise ValidationException("default_values must be a mapping")

        id_field = data.get("id_field") or ""
        if not isinstance(id_field, str):
            raise ValidationException("id_field must be a string")

        return cls(
            id_field=id_field.strip(),
            dynamic_fields=[DynamicFieldSpec.from_dict(item) for item in dynamic_fields],
            hashing_algorithm=HashingAlgorithm.parse(data.get("hashing_algorithm")),
            default_values=dict(default_values),
        )


# ==============================================================================
# STORED RECORDS
# ==============================================================================

@dataclass
class Template:
    """Template source owned by the template store"""
    name: str
    source: str
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class RenderedInstance:
    """
    Cached result of one generate+render cycle.

    `generated_fields` holds the stored (post-hash) form of each
    dynamic field. Never mutated after creation.
    """
    template_name: str
    identity_value: str
    generated_fields: Dict[str, str]
    rendered_output: bytes
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "template_name": self.template_name,
            "identity_value": self.identity_value,
            "generated_fields": dict(self.generated_fields),
            "rendered_output": self.rendered_output.decode("utf-8", errors="replace"),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class RenderedInstanceSummary:
    """Listing entry for a rendered instance"""
    identity_value: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity_value": self.identity_value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class RenderResult:
    """
    Result of a render request.

    `disclosed_values` carries the plaintext of generated fields and is
    only populated on the request that triggered generation.
    """
    output: bytes
    cached: bool = False
    identity_value: Optional[str] = None
    disclosed_values: Dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.output.decode("utf-8")


# ==============================================================================
# TEMPLATE EXECUTOR INTERFACE
# ==============================================================================

class ITemplateExecutor(ABC):
    """
    Abstract interface for the template execution engine.

    Takes raw template source and a context mapping.
    """

    @abstractmethod
    def validate(self, source: str) -> None:
        """
        Check that source parses.

        Raises:
            TemplateValidationException: If the source has a syntax error
        """
        pass

    @abstractmethod
    def render(self, source: str, context: Dict[str, Any]) -> bytes:
        """
        Render source against context.

        Raises:
            RenderException: On syntax errors or undefined variables
        """
        pass
