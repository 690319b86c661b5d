"""Configuration file models.

This module defines the Pydantic models representing the config.toml
structure that declares the desired machine state.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommandEntry(BaseModel):
    """A ``[commands.<name>]`` table.

    Attributes:
        run: Shell command template; may reference ``$VAR`` or ``${VAR}``.
        sudo: Run through the privileged execution path.
        ensure_first: Run sequentially, before the concurrent batch.
        flag: Only run when flagged commands are requested.
        required: Binaries that must be on PATH for the command to run.
    """

    model_config = ConfigDict(extra="forbid")

    run: Annotated[str, Field(min_length=1, description="Shell command template")]
    sudo: Annotated[bool, Field(description="Run with elevated privileges")] = False
    ensure_first: Annotated[bool, Field(description="Run before other commands")] = False
    flag: Annotated[bool, Field(description="Only run when flagged")] = False
    required: Annotated[
        list[str],
        Field(default_factory=list, description="Binaries required on PATH"),
    ]


class BrewConfig(BaseModel):
    """The ``[brew]`` table listing Homebrew packages.

    Attributes:
        formulae: Formula names to keep installed.
        casks: Cask names to keep installed.
        taps: Taps to keep added.
        no_deps: Ignore packages installed only as dependencies when comparing.
    """

    model_config = ConfigDict(extra="forbid")

    formulae: Annotated[list[str], Field(default_factory=list)]
    casks: Annotated[list[str], Field(default_factory=list)]
    taps: Annotated[list[str], Field(default_factory=list)]
    no_deps: Annotated[bool, Field(description="Skip dependency tracking")] = False


class ConfigDocument(BaseModel):
    """Complete configuration document.

    Attributes:
        lock: When true, mutating commands are refused.
        settings: The ``[set]`` section; domain name to key/value table.
            Nested tables extend the domain name with a dot.
        vars: Variables available to command templates.
        commands: Auxiliary shell commands by name.
        brew: Optional Homebrew package lists.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    lock: Annotated[bool, Field(description="Refuse mutating commands")] = False
    settings: Annotated[
        dict[str, dict[str, Any]],
        Field(default_factory=dict, alias="set", description="Preference domains"),
    ]
    vars: Annotated[
        dict[str, str],
        Field(default_factory=dict, description="Command template variables"),
    ]
    commands: Annotated[
        dict[str, CommandEntry],
        Field(default_factory=dict, description="Auxiliary shell commands"),
    ]
    brew: Annotated[BrewConfig | None, Field(description="Homebrew packages")] = None

    @field_validator("vars")
    @classmethod
    def validate_var_names(cls, value: dict[str, str]) -> dict[str, str]:
        """Reject variable names that could never be referenced."""
        for name in value:
            if not name or not (name[0].isalpha() or name[0] == "_"):
                msg = f"Invalid variable name: {name!r}"
                raise ValueError(msg)
            if not all(c.isalnum() or c == "_" for c in name):
                msg = f"Invalid variable name: {name!r}"
                raise ValueError(msg)
        return value
