"""Per-widget binding configuration."""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from combofield.domain.exceptions import BindingConfigError

__all__ = ["BindingConfig"]


class BindingConfig(BaseModel):
    """Immutable configuration of one combobox binding.

    Options may be given by field name or by their camelCase alias
    (``autocompleteCommand``, ``idColumn``, ...).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    autocomplete_command: str = Field(
        ..., min_length=1, alias="autocompleteCommand", description="Lookup command naming the searched table"
    )
    id_column: str = Field("id", min_length=1, alias="idColumn", description="Primary identifier column")
    id_is_string: bool = Field(False, alias="idIsString", description="Whether the identifier is a string")
    alt_id_column: str | None = Field(
        None, alias="altIdColumn", description="Alternate unique column searched for typed text"
    )
    alt_id_is_string: bool = Field(False, alias="altIdIsString")
    minimum_input_length: int = Field(1, ge=0, alias="minimumInputLength")
    allow_clear: bool = Field(False, alias="allowClear")
    select_placeholder: str = Field("Select an item", alias="selectPlaceholder")
    not_found_message: str = Field("*** INVALID ***", alias="notFoundMessage")
    max_rows_per_page: int = Field(100, gt=0, alias="maxRowsPerPage")
    resolver: Any | None = Field(None, description="RowResolver; the registry default when None")
    extra_query_parameters: Mapping[str, str] | None = Field(None, alias="extraQueryParameters")

    @field_validator("alt_id_column", mode="before")
    @classmethod
    def _blank_alt_column(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("resolver")
    @classmethod
    def _check_resolver(cls, v: Any) -> Any:
        if v is not None and not callable(getattr(v, "resolve_by_id", None)):
            raise ValueError("resolver must provide an async resolve_by_id() method")
        return v

    @classmethod
    def coerce(cls, options: "BindingConfig | Mapping[str, Any]") -> "BindingConfig":
        """Build a config from a mapping of options, or pass an existing one through.

        Raises:
            BindingConfigError: If a required option is missing or an option is invalid
        """
        if isinstance(options, BindingConfig):
            return options
        if not isinstance(options, Mapping):
            raise BindingConfigError(f"Binding options must be a mapping, got {type(options).__name__}")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise BindingConfigError(f"Invalid combobox configuration: {e}") from e

    @property
    def empty_value(self) -> str:
        return "" if self.id_is_string else "0"
