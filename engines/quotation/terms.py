"""
CASA Quotation — Terms & Conditions
=====================================
Two clause sets (interiors, false ceiling), each either the default
clause list or custom text, rendered with per-quote variables:

    {validDays} {warrantyMonths} {paymentSchedule}
    {clientName} {projectName} {quoteId}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

TERMS_INTERIORS = "default_interiors"
TERMS_FALSE_CEILING = "default_false_ceiling"

DEFAULT_VALID_DAYS = 15
DEFAULT_WARRANTY_MONTHS = 12
DEFAULT_PAYMENT_SCHEDULE_TEXT = "50% booking, 40% mid, 10% handover"

DEFAULT_CLAUSES: Dict[str, Tuple[str, ...]] = {
    TERMS_INTERIORS: (
        "Prices are inclusive of margin; GST will be charged extra as applicable.",
        "Quote validity: {validDays} days from the date of issue.",
        "Payment terms: {paymentSchedule}.",
        "Standard warranty: {warrantyMonths} months on modular components "
        "against manufacturing defects.",
        "Any civil, electrical, and plumbing works are excluded unless "
        "specifically mentioned.",
        "Material brands are as selected; equivalents may be used upon client "
        "approval in case of unavailability.",
        "Site access, power, and water to be provided by client.",
    ),
    TERMS_FALSE_CEILING: (
        "Rates include framework, boards/grids, and standard jointing compound "
        "as per brand selection.",
        "Painting items, lights, and fan hook rods are billed separately under "
        "'OTHERS'.",
        "Quote validity: {validDays} days from the date of issue.",
        "Warranty: {warrantyMonths} months against sagging and cracks under "
        "normal usage.",
        "Hidden services (electrical/AC/Fire) routing is not included unless "
        "specified.",
        "Scaffolding and safety to be provided where necessary.",
    ),
}


@dataclass(frozen=True)
class TermsVars:
    valid_days: int = DEFAULT_VALID_DAYS
    warranty_months: int = DEFAULT_WARRANTY_MONTHS
    payment_schedule: str = DEFAULT_PAYMENT_SCHEDULE_TEXT

    def __post_init__(self) -> None:
        if not isinstance(self.valid_days, int) or self.valid_days < 1:
            raise ValueError("valid_days must be integer >= 1.")
        if not isinstance(self.warranty_months, int) or self.warranty_months < 0:
            raise ValueError("warranty_months must be integer >= 0.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid_days": self.valid_days,
            "warranty_months": self.warranty_months,
            "payment_schedule": self.payment_schedule,
        }


@dataclass(frozen=True)
class TermsSection:
    template_id: str
    use_default: bool = True
    custom_text: str = ""
    vars: TermsVars = field(default_factory=TermsVars)

    def __post_init__(self) -> None:
        if self.template_id not in DEFAULT_CLAUSES:
            raise ValueError(f"Unknown terms template '{self.template_id}'.")
        if not self.use_default and not self.custom_text.strip():
            raise ValueError("custom_text is required when use_default is False.")

    def clauses(self) -> Tuple[str, ...]:
        if self.use_default:
            return DEFAULT_CLAUSES[self.template_id]
        return tuple(
            line.strip() for line in self.custom_text.splitlines() if line.strip()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "use_default": self.use_default,
            "custom_text": self.custom_text,
            "vars": self.vars.to_dict(),
        }


@dataclass(frozen=True)
class Terms:
    interiors: TermsSection = field(
        default_factory=lambda: TermsSection(template_id=TERMS_INTERIORS)
    )
    false_ceiling: TermsSection = field(
        default_factory=lambda: TermsSection(template_id=TERMS_FALSE_CEILING)
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interiors": self.interiors.to_dict(),
            "false_ceiling": self.false_ceiling.to_dict(),
        }


def default_terms(validity_days: Optional[int] = None) -> Terms:
    """Default clause sets, validity taken from the global rules when given."""
    terms = Terms()
    if validity_days is None:
        return terms
    return Terms(
        interiors=replace(
            terms.interiors, vars=replace(terms.interiors.vars, valid_days=validity_days)
        ),
        false_ceiling=replace(
            terms.false_ceiling,
            vars=replace(terms.false_ceiling.vars, valid_days=validity_days),
        ),
    )


def render_clauses(
    lines: Tuple[str, ...],
    vars: TermsVars,
    *,
    client_name: str = "",
    project_name: str = "",
    quote_id: str = "",
) -> Tuple[str, ...]:
    substitutions = {
        "{clientName}": client_name or "",
        "{projectName}": project_name or "",
        "{quoteId}": quote_id or "",
        "{validDays}": str(vars.valid_days),
        "{warrantyMonths}": str(vars.warranty_months),
        "{paymentSchedule}": vars.payment_schedule,
    }
    rendered = []
    for line in lines:
        for token, value in substitutions.items():
            line = line.replace(token, value)
        rendered.append(line)
    return tuple(rendered)


def render_section(section: TermsSection, **context: str) -> Tuple[str, ...]:
    return render_clauses(section.clauses(), section.vars, **context)
