"""UN Secretariat entity mapping.

Departments stay listed under "UN Secretariat"; offices, overseas offices,
regional commissions and tribunals are reported as separate agencies. Only
the separately-listed entities are kept here, in match priority order.
"""

from __future__ import annotations

from dataclasses import dataclass

SECRETARIAT = "UN Secretariat"


@dataclass(frozen=True, slots=True)
class SecretariatEntity:
    short_name: str
    full_name: str
    keywords: tuple[str, ...]


SEPARATE_ENTITIES: tuple[SecretariatEntity, ...] = (
    SecretariatEntity("OCHA", "Office for the Coordination of Humanitarian Affairs", ("OCHA", "Humanitarian Affairs", "UNOCHA")),
    SecretariatEntity(
        "OHCHR",
        "Office of the UN High Commissioner for Human Rights",
        ("OHCHR", "Human Rights", "High Commissioner for Human Rights", "UNOHCHR"),
    ),
    SecretariatEntity("UNOCT", "Office of Counter-Terrorism", ("UNOCT", "Counter-Terrorism", "Counter Terrorism", "OCT")),
    SecretariatEntity("DCO", "Development Coordination Office", ("DCO", "Development Coordination", "Resident Coordinator")),
    SecretariatEntity("UNOOSA", "Office for Outer Space Affairs", ("UNOOSA", "Outer Space", "Space Affairs")),
    SecretariatEntity("OSAA", "Office of the Special Adviser on Africa", ("OSAA", "Special Adviser on Africa")),
    SecretariatEntity("UNDRR", "UN Office for Disaster Risk Reduction", ("UNDRR", "Disaster Risk Reduction", "UNISDR")),
    SecretariatEntity(
        "UN-OHRLLS",
        "Office of the High Representative for LDCs, LLDCs and SIDS",
        ("OHRLLS", "LDCs", "LLDCs", "SIDS", "Least Developed"),
    ),
    SecretariatEntity("UNOG", "UN Office at Geneva", ("UNOG", "Geneva", "Office at Geneva")),
    SecretariatEntity("UNOV", "UN Office at Vienna", ("UNOV", "Vienna", "Office at Vienna")),
    SecretariatEntity("UNON", "UN Office at Nairobi", ("UNON", "Nairobi", "Office at Nairobi")),
    SecretariatEntity("ECA", "Economic Commission for Africa", ("ECA", "Economic Commission for Africa", "UNECA")),
    SecretariatEntity("ECE", "Economic Commission for Europe", ("ECE", "Economic Commission for Europe", "UNECE")),
    SecretariatEntity(
        "ECLAC",
        "Economic Commission for Latin America and the Caribbean",
        ("ECLAC", "Latin America and the Caribbean", "CEPAL"),
    ),
    SecretariatEntity(
        "ESCAP",
        "Economic and Social Commission for Asia and the Pacific",
        ("ESCAP", "Asia and the Pacific", "Asia Pacific"),
    ),
    SecretariatEntity("ESCWA", "Economic and Social Commission for Western Asia", ("ESCWA", "Western Asia")),
    SecretariatEntity(
        "IRMCT",
        "International Residual Mechanism for Criminal Tribunals",
        ("IRMCT", "Residual Mechanism", "Criminal Tribunals"),
    ),
    SecretariatEntity("ICJ", "International Court of Justice", ("ICJ", "International Court of Justice", "World Court")),
)


def is_secretariat(agency: str | None) -> bool:
    normalized = (agency or "").strip().lower()
    return "secretariat" in normalized or normalized in {"un", "united nations"}


def effective_agency(short_agency: str | None, department: str | None) -> str | None:
    if not is_secretariat(short_agency):
        return short_agency

    normalized_department = (department or "").strip().lower()
    if not normalized_department:
        return SECRETARIAT

    for entity in SEPARATE_ENTITIES:
        for keyword in entity.keywords:
            if keyword.lower() in normalized_department:
                return entity.short_name
    return SECRETARIAT
