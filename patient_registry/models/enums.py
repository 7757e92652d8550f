"""
Coded values used on the patient record, with their display labels.

Race/colour, marital status and education level follow the categories of the
Brazilian death certificate (Declaração de Óbito), which is why they live on
the registration record at all.
"""

from __future__ import annotations

from enum import Enum


class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"
    OTHER = "O"
    UNKNOWN = "UNKNOWN"


class RaceColor(str, Enum):
    WHITE = "branca"
    BLACK = "preta"
    BROWN = "parda"
    YELLOW = "amarela"
    INDIGENOUS = "indigena"
    UNKNOWN = "ignorado"


class MaritalStatus(str, Enum):
    SINGLE = "solteiro"
    MARRIED = "casado"
    WIDOWED = "viuvo"
    DIVORCED = "divorciado"
    LEGALLY_SEPARATED = "separado_judicialmente"
    UNKNOWN = "ignorado"


class EducationLevel(str, Enum):
    NONE = "nenhuma"
    ELEMENTARY_INCOMPLETE = "fundamental_incompleto"
    ELEMENTARY_COMPLETE = "fundamental_completo"
    HIGH_SCHOOL_INCOMPLETE = "medio_incompleto"
    HIGH_SCHOOL_COMPLETE = "medio_completo"
    COLLEGE_INCOMPLETE = "superior_incompleto"
    COLLEGE_COMPLETE = "superior_completo"
    UNKNOWN = "ignorado"


class PatientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DECEASED = "deceased"


BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")


LABELS: dict[type[Enum], dict[Enum, str]] = {
    Gender: {
        Gender.MALE: "Masculino",
        Gender.FEMALE: "Feminino",
        Gender.OTHER: "Outro",
        Gender.UNKNOWN: "Não Informado",
    },
    RaceColor: {
        RaceColor.WHITE: "Branca",
        RaceColor.BLACK: "Preta",
        RaceColor.BROWN: "Parda",
        RaceColor.YELLOW: "Amarela",
        RaceColor.INDIGENOUS: "Indígena",
        RaceColor.UNKNOWN: "Não Informado",
    },
    MaritalStatus: {
        MaritalStatus.SINGLE: "Solteiro(a)",
        MaritalStatus.MARRIED: "Casado(a)",
        MaritalStatus.WIDOWED: "Viúvo(a)",
        MaritalStatus.DIVORCED: "Divorciado(a)",
        MaritalStatus.LEGALLY_SEPARATED: "Separado(a) Judicialmente",
        MaritalStatus.UNKNOWN: "Não Informado",
    },
    EducationLevel: {
        EducationLevel.NONE: "Nenhuma",
        EducationLevel.ELEMENTARY_INCOMPLETE: "Fundamental Incompleto (1ª a 8ª série)",
        EducationLevel.ELEMENTARY_COMPLETE: "Fundamental Completo",
        EducationLevel.HIGH_SCHOOL_INCOMPLETE: "Médio Incompleto (2º grau)",
        EducationLevel.HIGH_SCHOOL_COMPLETE: "Médio Completo",
        EducationLevel.COLLEGE_INCOMPLETE: "Superior Incompleto",
        EducationLevel.COLLEGE_COMPLETE: "Superior Completo",
        EducationLevel.UNKNOWN: "Não Informado",
    },
    PatientStatus: {
        PatientStatus.ACTIVE: "Ativo",
        PatientStatus.INACTIVE: "Inativo",
        PatientStatus.DECEASED: "Falecido",
    },
}


def _check_labels_total() -> None:
    for enum_cls, labels in LABELS.items():
        missing = [member.name for member in enum_cls if member not in labels]
        if missing:
            raise ValueError(f"{enum_cls.__name__} has no label for: {', '.join(missing)}")


_check_labels_total()


def label_for(value: Enum) -> str:
    """Display label for an enum member."""
    return LABELS[type(value)][value]


def labels_by_value(enum_cls: type[Enum]) -> dict[str, str]:
    """`{stored value: label}` for one enumeration, in declaration order."""
    return {member.value: LABELS[enum_cls][member] for member in enum_cls}
