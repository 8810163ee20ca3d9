"""Field key namespace for the context injection settings.

Every key the editor understands is declared here once, with its logical
type, default, bounds or options, and the UI group it renders in. The
stored representation is always a flat ``Dict[str, str]``; the codec in
:mod:`memctx.settings.codec` converts between that and the logical types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class FieldType(Enum):
    """Logical types of context settings fields.

    Attributes:
        NUMBER: Bounded integer stored as a decimal string.
        CHECKBOX: Boolean stored as ``"true"`` / ``"false"``.
        SELECT: Enumeration stored as one of a fixed set of literals.
        MULTI_SELECT: Set of option literals stored comma-joined.
        PASSWORD: Secret stored verbatim, masked on display.
        TEXT: Free text stored verbatim.
    """

    NUMBER = "number"
    CHECKBOX = "checkbox"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    PASSWORD = "password"
    TEXT = "text"


# Keys
OBSERVATIONS = "CLAUDE_MEM_CONTEXT_OBSERVATIONS"
SESSION_COUNT = "CLAUDE_MEM_CONTEXT_SESSION_COUNT"
OBSERVATION_TYPES = "CLAUDE_MEM_CONTEXT_OBSERVATION_TYPES"
OBSERVATION_CONCEPTS = "CLAUDE_MEM_CONTEXT_OBSERVATION_CONCEPTS"
FULL_COUNT = "CLAUDE_MEM_CONTEXT_FULL_COUNT"
FULL_FIELD = "CLAUDE_MEM_CONTEXT_FULL_FIELD"
SHOW_READ_TOKENS = "CLAUDE_MEM_CONTEXT_SHOW_READ_TOKENS"
SHOW_WORK_TOKENS = "CLAUDE_MEM_CONTEXT_SHOW_WORK_TOKENS"
SHOW_SAVINGS_AMOUNT = "CLAUDE_MEM_CONTEXT_SHOW_SAVINGS_AMOUNT"
PROVIDER = "CLAUDE_MEM_PROVIDER"
CLAUDE_MODEL = "CLAUDE_MEM_MODEL"
GEMINI_API_KEY = "CLAUDE_MEM_GEMINI_API_KEY"
GEMINI_MODEL = "CLAUDE_MEM_GEMINI_MODEL"
GEMINI_RATE_LIMITING = "CLAUDE_MEM_GEMINI_RATE_LIMITING_ENABLED"
OPENROUTER_API_KEY = "CLAUDE_MEM_OPENROUTER_API_KEY"
OPENROUTER_MODEL = "CLAUDE_MEM_OPENROUTER_MODEL"
OPENROUTER_SITE_URL = "CLAUDE_MEM_OPENROUTER_SITE_URL"
OPENROUTER_APP_NAME = "CLAUDE_MEM_OPENROUTER_APP_NAME"
WORKER_PORT = "CLAUDE_MEM_WORKER_PORT"
SHOW_LAST_SUMMARY = "CLAUDE_MEM_CONTEXT_SHOW_LAST_SUMMARY"
SHOW_LAST_MESSAGE = "CLAUDE_MEM_CONTEXT_SHOW_LAST_MESSAGE"

PROVIDER_CLAUDE = "claude"
PROVIDER_GEMINI = "gemini"
PROVIDER_OPENROUTER = "openrouter"
PROVIDERS = (PROVIDER_CLAUDE, PROVIDER_GEMINI, PROVIDER_OPENROUTER)
DEFAULT_PROVIDER = PROVIDER_CLAUDE

OBSERVATION_TYPE_OPTIONS = (
    "bugfix",
    "feature",
    "refactor",
    "discovery",
    "decision",
    "change",
)
OBSERVATION_CONCEPT_OPTIONS = (
    "how-it-works",
    "why-it-exists",
    "what-changed",
    "problem-solution",
    "gotcha",
    "pattern",
    "trade-off",
)


@dataclass(frozen=True)
class SettingField:
    """Definition of a single context setting.

    Attributes:
        key: Flat storage key (e.g., "CLAUDE_MEM_CONTEXT_OBSERVATIONS").
        label: Human-readable label for the UI.
        type: Logical field type.
        default: Stored-form default used when the key is absent or malformed.
        description: Help text shown in UI tooltips.
        options: Allowed literals for SELECT and MULTI_SELECT fields.
        min_value: Inclusive lower bound for NUMBER fields.
        max_value: Inclusive upper bound for NUMBER fields.
        group: Group identifier the field renders in.
        providers: If set, the field is only relevant for these providers.
        placeholder: Placeholder text for text inputs.
    """

    key: str
    label: str
    type: FieldType
    default: str = ""
    description: str = ""
    options: Optional[Tuple[str, ...]] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    group: str = "advanced"
    providers: Optional[Tuple[str, ...]] = None
    placeholder: Optional[str] = None

    def __post_init__(self):
        if self.type in (FieldType.SELECT, FieldType.MULTI_SELECT) and not self.options:
            raise ValueError(f"Field '{self.key}': {self.type.name} type requires options")
        if self.type == FieldType.NUMBER and (self.min_value is None or self.max_value is None):
            raise ValueError(f"Field '{self.key}': NUMBER type requires min_value and max_value")

    @property
    def secret(self) -> bool:
        return self.type == FieldType.PASSWORD

    def is_relevant_for(self, provider: str) -> bool:
        """Check whether this field applies to the given provider."""
        return self.providers is None or provider in self.providers

    def validate(self, raw: Optional[str]) -> Optional[str]:
        """Check a raw stored value against this field's constraints.

        Validation is advisory: the draft accepts any string and the codec
        degrades to defaults, so callers use this only to warn.

        Args:
            raw: The stored string value, or None if absent.

        Returns:
            Error message if invalid, None if valid or absent.
        """
        if raw is None:
            return None

        if self.type == FieldType.NUMBER:
            from .codec import parse_int  # codec imports this module

            number = parse_int(raw)
            if number is None:
                return f"{self.label} must be a whole number"
            if number < self.min_value or number > self.max_value:
                return f"{self.label} must be between {self.min_value} and {self.max_value}"

        elif self.type == FieldType.CHECKBOX:
            if raw not in ("true", "false"):
                return f"{self.label} must be 'true' or 'false'"

        elif self.type == FieldType.SELECT:
            if raw not in self.options:
                return f"{self.label} must be one of: {', '.join(self.options)}"

        elif self.type == FieldType.MULTI_SELECT:
            unknown = [m for m in raw.split(",") if m and m not in self.options]
            if unknown:
                return f"{self.label} has unknown option(s): {', '.join(unknown)}"

        return None


CONTEXT_SETTINGS_SCHEMA: List[SettingField] = [
    # Loading
    SettingField(
        OBSERVATIONS,
        "Observations",
        FieldType.NUMBER,
        default="50",
        description="Number of recent observations to include in context (1-200)",
        min_value=1,
        max_value=200,
        group="loading",
    ),
    SettingField(
        SESSION_COUNT,
        "Sessions",
        FieldType.NUMBER,
        default="10",
        description="Number of recent sessions to pull observations from (1-50)",
        min_value=1,
        max_value=50,
        group="loading",
    ),
    # Filters
    SettingField(
        OBSERVATION_TYPES,
        "Types",
        FieldType.MULTI_SELECT,
        default=",".join(OBSERVATION_TYPE_OPTIONS),
        options=OBSERVATION_TYPE_OPTIONS,
        group="filters",
    ),
    SettingField(
        OBSERVATION_CONCEPTS,
        "Concepts",
        FieldType.MULTI_SELECT,
        default=",".join(OBSERVATION_CONCEPT_OPTIONS),
        options=OBSERVATION_CONCEPT_OPTIONS,
        group="filters",
    ),
    # Display
    SettingField(
        FULL_COUNT,
        "Full observations",
        FieldType.NUMBER,
        default="5",
        description="Number of observations shown with expanded details (0-20)",
        min_value=0,
        max_value=20,
        group="display",
    ),
    SettingField(
        FULL_FIELD,
        "Expanded field",
        FieldType.SELECT,
        default="narrative",
        description="Which field full observations expand",
        options=("narrative", "facts"),
        group="display",
    ),
    SettingField(
        SHOW_READ_TOKENS,
        "Read cost",
        FieldType.CHECKBOX,
        default="true",
        description="Tokens needed to read this observation",
        group="display",
    ),
    SettingField(
        SHOW_WORK_TOKENS,
        "Work investment",
        FieldType.CHECKBOX,
        default="true",
        description="Tokens spent creating this observation",
        group="display",
    ),
    SettingField(
        SHOW_SAVINGS_AMOUNT,
        "Savings",
        FieldType.CHECKBOX,
        default="true",
        description="Total tokens saved by reusing context",
        group="display",
    ),
    # Advanced
    SettingField(
        PROVIDER,
        "AI provider",
        FieldType.SELECT,
        default=DEFAULT_PROVIDER,
        description="Claude (via Agent SDK), Gemini (via REST API) or OpenRouter",
        options=PROVIDERS,
    ),
    SettingField(
        CLAUDE_MODEL,
        "Claude model",
        FieldType.SELECT,
        default="haiku",
        description="Claude model used to generate observations",
        options=("haiku", "sonnet", "opus"),
        providers=(PROVIDER_CLAUDE,),
    ),
    SettingField(
        GEMINI_API_KEY,
        "Gemini API key",
        FieldType.PASSWORD,
        description="Google AI Studio API key (or set GEMINI_API_KEY)",
        providers=(PROVIDER_GEMINI,),
        placeholder="Enter Gemini API key...",
    ),
    SettingField(
        GEMINI_MODEL,
        "Gemini model",
        FieldType.SELECT,
        default="gemini-2.5-flash-lite",
        description="Gemini model used to generate observations",
        options=("gemini-2.5-flash-lite", "gemini-2.5-flash", "gemini-3-flash"),
        providers=(PROVIDER_GEMINI,),
    ),
    SettingField(
        GEMINI_RATE_LIMITING,
        "Rate limiting",
        FieldType.CHECKBOX,
        default="true",
        description="Enable for the free tier (10-30 RPM). Disable on paid plans (1000+ RPM).",
        providers=(PROVIDER_GEMINI,),
    ),
    SettingField(
        OPENROUTER_API_KEY,
        "OpenRouter API key",
        FieldType.PASSWORD,
        description="OpenRouter API key (or set OPENROUTER_API_KEY)",
        providers=(PROVIDER_OPENROUTER,),
        placeholder="Enter OpenRouter API key...",
    ),
    SettingField(
        OPENROUTER_MODEL,
        "OpenRouter model",
        FieldType.TEXT,
        default="xiaomi/mimo-v2-flash:free",
        description="OpenRouter model identifier (e.g. anthropic/claude-3.5-sonnet)",
        providers=(PROVIDER_OPENROUTER,),
        placeholder="e.g., xiaomi/mimo-v2-flash:free",
    ),
    SettingField(
        OPENROUTER_SITE_URL,
        "Site URL (optional)",
        FieldType.TEXT,
        description="Site URL for OpenRouter analytics",
        providers=(PROVIDER_OPENROUTER,),
        placeholder="https://yoursite.com",
    ),
    SettingField(
        OPENROUTER_APP_NAME,
        "App name (optional)",
        FieldType.TEXT,
        default="claude-mem",
        description="App name for OpenRouter analytics",
        providers=(PROVIDER_OPENROUTER,),
        placeholder="claude-mem",
    ),
    SettingField(
        WORKER_PORT,
        "Worker port",
        FieldType.NUMBER,
        default="37777",
        description="Port of the background worker service",
        min_value=1024,
        max_value=65535,
    ),
    SettingField(
        SHOW_LAST_SUMMARY,
        "Include last summary",
        FieldType.CHECKBOX,
        default="true",
        description="Add the previous session's summary to context",
    ),
    SettingField(
        SHOW_LAST_MESSAGE,
        "Include last message",
        FieldType.CHECKBOX,
        default="false",
        description="Add the previous session's final message",
    ),
]

_FIELDS_BY_KEY: Dict[str, SettingField] = {f.key: f for f in CONTEXT_SETTINGS_SCHEMA}

# Groups that do not exist here only contain unknown keys, which never render.
GROUPS: Tuple[Tuple[str, str, str, bool], ...] = (
    ("loading", "Loading", "How many observations to inject", False),
    ("filters", "Filters", "Which observation kinds to include", False),
    ("display", "Display", "What to show in the context table", False),
    ("advanced", "Advanced", "AI provider and model selection", True),
)


def get_field_by_key(key: str, schema: Optional[List[SettingField]] = None) -> Optional[SettingField]:
    """Find a field by its key.

    Args:
        key: The key to search for.
        schema: Optional schema to search; defaults to the context schema.

    Returns:
        The matching SettingField or None.
    """
    if schema is None:
        return _FIELDS_BY_KEY.get(key)
    for setting_field in schema:
        if setting_field.key == key:
            return setting_field
    return None


def default_configuration() -> Dict[str, str]:
    """Build a complete configuration holding every field's default."""
    return {f.key: f.default for f in CONTEXT_SETTINGS_SCHEMA}
