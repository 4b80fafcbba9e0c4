"""Pydantic models for API responses and CLI output"""

from typing import Any

from pydantic import BaseModel, Field

from rxguard.errors import PatternError, RegexGuardError, TemplateError, UnsafePattern
from rxguard.regex import RiskProfile
from rxguard.safe_regex import assert_replacement_safe, assert_safe, compile_pattern


# ANSI color codes
BOLD = '\033[1m'
RED = '\033[91m'
YELLOW = '\033[33m'
GREEN = '\033[32m'
CYAN = '\033[36m'
GREY = '\033[90m'
RESET = '\033[0m'


class _Palette:
    """Color codes that collapse to empty strings when color is off"""

    def __init__(self, colorize: bool):
        self.bold = BOLD if colorize else ''
        self.red = RED if colorize else ''
        self.yellow = YELLOW if colorize else ''
        self.green = GREEN if colorize else ''
        self.cyan = CYAN if colorize else ''
        self.grey = GREY if colorize else ''
        self.reset = RESET if colorize else ''
        self.ok = '✓' if colorize else '+'
        self.fail = '✗' if colorize else 'X'


class RiskProfileModel(BaseModel):
    """Structural risk measurements of a pattern"""

    star_height: int = Field(..., example=2, description='Maximum nesting depth of unbounded quantifiers')
    repetition_cost: int = Field(
        ..., example=12, description='Worst-case product of quantifier bounds (unbounded counted as a sentinel)'
    )
    bounded_repetition_cost: int = Field(
        ..., example=12, description='Worst-case product of finite quantifier bounds only'
    )
    has_backreference: bool = Field(..., example=False, description='Pattern contains a backreference')

    @classmethod
    def from_profile(cls, profile: RiskProfile) -> 'RiskProfileModel':
        return cls(
            star_height=profile.star_height,
            repetition_cost=profile.repetition_cost,
            bounded_repetition_cost=profile.bounded_repetition_cost,
            has_backreference=profile.has_backreference,
        )


class CheckLimits(BaseModel):
    """Limits a pattern was checked against"""

    star_height_limit: int = Field(..., example=1)
    repetition_limit: int = Field(..., example=1000)
    allow_backreference: bool = Field(False, example=False)


class SafetyCheckResponse(BaseModel):
    """
    Result of checking a pattern against the safety policy.

    ``safe`` is False both for malformed patterns (``error_type`` = ``pattern_error``)
    and for patterns exceeding a limit (``error_type`` = ``unsafe_pattern``).
    """

    regex: str = Field(..., example='(a+)+')
    safe: bool = Field(..., example=False)
    limits: CheckLimits
    profile: RiskProfileModel | None = Field(None, description='Risk profile, absent for malformed patterns')
    error_type: str | None = Field(None, example='unsafe_pattern')
    reason: str | None = Field(None, example='star_height_exceeded', description='Which limit was exceeded')
    value: int | None = Field(None, example=2, description='Measured value for the exceeded limit')
    limit: int | None = Field(None, example=1)
    message: str | None = Field(None, description='Human-readable error message')
    position: int | None = Field(None, description='Offending offset in the pattern, if known')

    @classmethod
    def build(
        cls,
        regex: str,
        limits: CheckLimits,
        profile: RiskProfile | None = None,
        error: RegexGuardError | None = None,
    ) -> 'SafetyCheckResponse':
        data: dict[str, Any] = {
            'regex': regex,
            'safe': error is None,
            'limits': limits,
            'profile': RiskProfileModel.from_profile(profile) if profile is not None else None,
        }
        if isinstance(error, UnsafePattern):
            data.update(
                error_type='unsafe_pattern',
                reason=error.reason.value,
                value=error.value,
                limit=error.limit,
                message=error.message,
            )
        elif error is not None:
            data.update(error_type='pattern_error', message=error.message, position=_known_position(error))
        return cls(**data)

    @classmethod
    def run(cls, regex: str, limits: CheckLimits) -> 'SafetyCheckResponse':
        """Check ``regex`` against ``limits``; rejections are reported, not raised."""
        try:
            profile = assert_safe(regex, limits.star_height_limit, limits.repetition_limit, limits.allow_backreference)
        except UnsafePattern as e:
            return cls.build(regex, limits, compile_pattern(regex).risk_profile, e)
        except PatternError as e:
            return cls.build(regex, limits, error=e)
        return cls.build(regex, limits, profile)

    def to_cli(self, colorize: bool = False) -> str:
        """Format the check result for terminal output"""
        c = _Palette(colorize)
        lines = [f'{c.bold}SAFETY CHECK{c.reset}', '']
        lines.append(f'{c.grey}Pattern:{c.reset} {c.cyan}{self.regex}{c.reset}')

        if self.safe:
            lines.append(f'{c.grey}Verdict:{c.reset} {c.green}{c.ok} SAFE{c.reset}')
        elif self.error_type == 'pattern_error':
            lines.append(f'{c.grey}Verdict:{c.reset} {c.red}{c.fail} INVALID{c.reset}')
        else:
            lines.append(f'{c.grey}Verdict:{c.reset} {c.red}{c.fail} UNSAFE{c.reset}')

        if self.message:
            lines.append(f'{c.grey}Reason:{c.reset} {self.message}')
        if self.position is not None:
            lines.append(f'  {self.regex}')
            lines.append(f'  {" " * self.position}{c.red}^{c.reset}')
        lines.append('')

        if self.profile is not None:
            lines.append(f'{c.bold}RISK PROFILE:{c.reset}')
            lines.append(
                f'  {c.grey}Star height:{c.reset}        {self.profile.star_height}'
                f' (limit {self.limits.star_height_limit})'
            )
            lines.append(
                f'  {c.grey}Repetition cost:{c.reset}    {self.profile.bounded_repetition_cost:,}'
                f' (limit {self.limits.repetition_limit:,})'
            )
            backref = 'yes' if self.profile.has_backreference else 'no'
            allowed = 'allowed' if self.limits.allow_backreference else 'not allowed'
            lines.append(f'  {c.grey}Backreference:{c.reset}      {backref} ({allowed})')

        return '\n'.join(lines)


class ReplacementCheckResponse(BaseModel):
    """Result of validating a replacement template against a pattern"""

    regex: str = Field(..., example='(?<x>a)(b)')
    template: str = Field(..., example='$1-${x}')
    valid: bool = Field(..., example=True)
    references: list[int | str] = Field(default_factory=list, example=[1, 'x'], description='Groups referenced')
    error_type: str | None = Field(None, example='template_error')
    reason: str | None = Field(None, example='unknown_group_number')
    message: str | None = None
    position: int | None = None

    @classmethod
    def build(
        cls, regex: str, template: str, references: tuple = (), error: RegexGuardError | None = None
    ) -> 'ReplacementCheckResponse':
        data: dict[str, Any] = {'regex': regex, 'template': template, 'valid': error is None}
        if error is None:
            data['references'] = list(references)
        elif isinstance(error, TemplateError):
            data.update(
                error_type='template_error',
                reason=error.reason.value,
                message=error.message,
                position=error.position,
            )
        else:
            data.update(error_type='pattern_error', message=error.message, position=_known_position(error))
        return cls(**data)

    @classmethod
    def run(cls, regex: str, template: str) -> 'ReplacementCheckResponse':
        try:
            valid = assert_replacement_safe(regex, template)
        except (PatternError, TemplateError) as e:
            return cls.build(regex, template, error=e)
        return cls.build(regex, template, valid.references)

    def to_cli(self, colorize: bool = False) -> str:
        c = _Palette(colorize)
        lines = [
            f'{c.grey}Pattern:{c.reset}  {c.cyan}{self.regex}{c.reset}',
            f'{c.grey}Template:{c.reset} {c.cyan}{self.template}{c.reset}',
        ]
        if self.valid:
            refs = ', '.join(str(ref) for ref in self.references) or 'none'
            lines.append(f'{c.green}{c.ok}{c.reset} Template is valid (references: {refs})')
        else:
            subject = 'Template' if self.error_type == 'template_error' else 'Pattern'
            lines.append(f'{c.red}{c.fail}{c.reset} {subject} rejected: {self.message}')
            if self.position is not None and self.error_type == 'template_error':
                lines.append(f'  {self.template}')
                lines.append(f'  {" " * self.position}{c.red}^{c.reset}')
        return '\n'.join(lines)


class GlobTranslationResponse(BaseModel):
    """Regex produced for a glob"""

    glob: str = Field(..., example='foo.*')
    regex: str | None = Field(None, example='foo\\..*')
    error: str | None = None
    position: int | None = None


class AddressMatchResponse(BaseModel):
    """Whether two wildcard addresses match each other"""

    address_a: str = Field(..., example='foo.bar')
    address_b: str = Field(..., example='foo.*')
    matches: bool = Field(..., example=True)


class HealthResponse(BaseModel):
    """Health check response with service introspection data"""

    status: str = Field(..., example='ok')
    app_version: str = Field(..., example='0.3.0', description='Application version')
    python_version: str = Field(..., example='3.12.4', description='Python interpreter version')
    python_packages: dict[str, str] = Field(
        default_factory=dict,
        example={'fastapi': '0.115.6', 'pydantic': '2.11.0', 'regex': '2024.11.6'},
        description='Key Python package versions',
    )
    constants: dict[str, Any] = Field(
        default_factory=dict,
        example={'STAR_HEIGHT_LIMIT': 1, 'REPETITION_LIMIT': 1000},
        description='Application configuration constants',
    )
    environment: dict[str, str] = Field(
        default_factory=dict, example={'RXGUARD_LOG_LEVEL': 'INFO'}, description='RXGUARD_* environment variables'
    )
    caches: dict[str, dict[str, Any]] = Field(default_factory=dict, description='Cache sizes and hit counters')


def _known_position(error: RegexGuardError) -> int | None:
    if isinstance(error, PatternError) and error.position >= 0:
        return error.position
    return None
