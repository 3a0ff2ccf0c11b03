"""Typed model of the IMM 1294 application record.

One pydantic model per form section, with camelCase aliases so the wizard's
JSON maps one-to-one onto the models. Leaves are plain strings (ISO dates
included) and booleans. Values are kept as sent: range and format checks
belong to the rule table, not to parsing.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Section(BaseModel):
    """Common config: camelCase aliases, unknown keys ignored, nulls dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        bool_keys: set[str] = set()
        for name, info in cls.model_fields.items():
            if info.annotation is bool:
                bool_keys.update({name, info.alias or name})
        return {
            k: v for k, v in data.items()
            if v is not None and not (k in bool_keys and v == "")
        }


# -- Personal details ----------------------------------------------------------

class NameParts(Section):
    family_name: str = ""
    given_names: str = ""


class PlaceOfBirth(Section):
    city: str = ""
    country: str = ""


class Residence(Section):
    country: str = ""
    status: str = ""
    other: str = ""
    from_: str = Field("", alias="from")
    to: str = ""


class ApplyingFrom(Residence):
    same_as_current: bool = True


class PersonalInfo(Section):
    family_name: str = ""
    given_names: str = ""
    has_other_names: bool = False
    other_names: NameParts = Field(default_factory=NameParts)
    sex: str = ""
    date_of_birth: str = ""
    place_of_birth: PlaceOfBirth = Field(default_factory=PlaceOfBirth)
    citizenship: str = ""
    current_residence: Residence = Field(default_factory=Residence)
    previous_residences: list[Residence] = Field(default_factory=list)
    applying_from: ApplyingFrom = Field(default_factory=ApplyingFrom)


# -- Marital status ------------------------------------------------------------

class PreviousSpouse(Section):
    family_name: str = ""
    given_names: str = ""
    date_of_birth: str = ""
    relationship_type: str = ""
    from_: str = Field("", alias="from")
    to: str = ""


class MaritalInfo(Section):
    status: str = ""
    date_of_marriage: str = ""
    spouse: NameParts = Field(default_factory=NameParts)
    previously_married: bool = False
    previous_spouse: PreviousSpouse = Field(default_factory=PreviousSpouse)


# -- Language and identity documents --------------------------------------------

class LanguageInfo(Section):
    native_language: str = ""
    communicate_in_english_french: str = ""
    most_at_ease: str = ""
    language_test: bool = False


class PassportInfo(Section):
    number: str = ""
    country_of_issue: str = ""
    issue_date: str = ""
    expiry_date: str = ""
    taiwan_passport: bool = False
    israeli_passport: bool = False


class NationalIdInfo(Section):
    has_document: bool = False
    document_number: str = ""
    country_of_issue: str = ""
    issue_date: str = ""
    expiry_date: str = ""


class USPRInfo(Section):
    is_permanent_resident: bool = False
    uscis_number: str = ""
    expiry_date: str = ""


# -- Contact information -------------------------------------------------------

class Address(Section):
    apt_unit: str = ""
    street_no: str = ""
    street_name: str = ""
    city: str = ""
    country: str = ""
    province_state: str = ""
    postal_code: str = ""
    district: str = ""


class MailingAddress(Address):
    po_box: str = ""


class Fax(Section):
    is_canada_us: bool = Field(True, alias="isCanadaUS")
    country_code: str = ""
    number: str = ""
    ext: str = ""


class Telephone(Fax):
    type: str = ""


class ContactInfo(Section):
    mailing_address: MailingAddress = Field(default_factory=MailingAddress)
    residential_same_as_mailing: bool = True
    residential_address: Address = Field(default_factory=Address)
    telephone: Telephone = Field(default_factory=Telephone)
    alternate_telephone: Telephone = Field(default_factory=Telephone)
    fax: Fax = Field(default_factory=Fax)
    email: str = ""


# -- Study details -------------------------------------------------------------

class SchoolAddress(Section):
    province: str = ""
    city: str = ""
    address: str = ""


class Period(Section):
    from_: str = Field("", alias="from")
    to: str = ""


class Costs(Section):
    tuition: str = ""
    room_and_board: str = ""
    other: str = ""


class AttestationLetter(Section):
    document_number: str = ""
    expiry_date: str = ""


class AcceptanceCertificate(Section):
    certificate_number: str = ""
    expiry_date: str = ""


class StudyDetails(Section):
    school_name: str = ""
    level_of_study: str = ""
    field_of_study: str = ""
    program_name: str = ""
    school_address: SchoolAddress = Field(default_factory=SchoolAddress)
    dli_number: str = ""
    student_id: str = ""
    duration: Period = Field(default_factory=Period)
    costs: Costs = Field(default_factory=Costs)
    funds_available: str = ""
    funding_source: str = ""
    expenses_paid_by: str = ""
    expenses_paid_by_other: str = ""
    pal: AttestationLetter = Field(default_factory=AttestationLetter)
    caq: AcceptanceCertificate = Field(default_factory=AcceptanceCertificate)


# -- Education, employment, background -----------------------------------------

class HighestEducation(Section):
    level: str = ""
    from_: str = Field("", alias="from")
    to: str = ""
    field_and_level: str = ""
    school_name: str = ""
    city: str = ""
    country: str = ""
    province_state: str = ""


class EducationHistory(Section):
    has_post_secondary: bool = False
    highest_education: HighestEducation = Field(default_factory=HighestEducation)


class EmploymentEntry(Section):
    from_: str = Field("", alias="from")
    to: str = ""
    occupation: str = ""
    company_name: str = ""
    city: str = ""
    country: str = ""
    province_state: str = ""


class HealthHistory(Section):
    tuberculosis: bool = False
    physical_mental_disorder: bool = False
    details: str = ""


class ImmigrationHistory(Section):
    overstayed: bool = False
    refused_visa: bool = False
    previous_application: bool = False
    details: str = ""


class CriminalHistory(Section):
    has_record: bool = False
    details: str = ""


class MilitaryService(Section):
    served: bool = False
    details: str = ""


class PoliticalAssociations(Section):
    member_of_party: bool = False


class WarCrimes(Section):
    witnessed: bool = False


class BackgroundInfo(Section):
    health: HealthHistory = Field(default_factory=HealthHistory)
    immigration: ImmigrationHistory = Field(default_factory=ImmigrationHistory)
    criminal: CriminalHistory = Field(default_factory=CriminalHistory)
    military: MilitaryService = Field(default_factory=MilitaryService)
    political: PoliticalAssociations = Field(default_factory=PoliticalAssociations)
    war_crimes: WarCrimes = Field(default_factory=WarCrimes)


# -- Root ----------------------------------------------------------------------

class ApplicationRecord(Section):
    """The whole IMM 1294 application, as collected by the wizard."""

    uci: str = ""
    service_language: str = ""
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    marital_info: MaritalInfo = Field(default_factory=MaritalInfo)
    language_info: LanguageInfo = Field(default_factory=LanguageInfo)
    passport_info: PassportInfo = Field(default_factory=PassportInfo)
    national_id_info: NationalIdInfo = Field(default_factory=NationalIdInfo)
    us_pr_info: USPRInfo = Field(default_factory=USPRInfo, alias="usPRInfo")
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    study_details: StudyDetails = Field(default_factory=StudyDetails)
    education_history: EducationHistory = Field(default_factory=EducationHistory)
    employment_history: list[EmploymentEntry] = Field(default_factory=list)
    background_info: BackgroundInfo = Field(default_factory=BackgroundInfo)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ApplicationRecord:
        return cls.model_validate(dict(data or {}))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @property
    def applicant_name(self) -> str:
        """``"Family, Given"`` as printed on continuation pages."""
        p = self.personal_info
        return f"{p.family_name}, {p.given_names}".strip(", ")


def record_leaf_paths(model: type[BaseModel] = ApplicationRecord, prefix: str = "") -> set[str]:
    """Every addressable leaf path of the record, using JSON aliases.

    List sections contribute ``"<path>[].<leaf>"`` entries.
    """
    return set(_iter_leaf_paths(model, prefix))


def _iter_leaf_paths(model: type[BaseModel], prefix: str) -> Iterator[str]:
    for name, info in model.model_fields.items():
        key = f"{prefix}{info.alias or name}"
        annotation = info.annotation
        if get_origin(annotation) is list:
            (item,) = get_args(annotation)
            yield from _iter_leaf_paths(item, f"{key}[].")
        elif isinstance(annotation, type) and issubclass(annotation, BaseModel):
            yield from _iter_leaf_paths(annotation, f"{key}.")
        else:
            yield key


# -- Per-section setters -------------------------------------------------------
# The wizard edits one section at a time. Each setter returns a new record and
# rejects attribute names the section does not define.

def _update_section(record: ApplicationRecord, attr: str, changes: dict[str, Any]) -> ApplicationRecord:
    section = getattr(record, attr)
    section_cls = type(section)
    unknown = sorted(k for k in changes if k not in section_cls.model_fields)
    if unknown:
        raise AttributeError(f"{section_cls.__name__} has no field(s): {', '.join(unknown)}")
    updated = section_cls.model_validate({**section.model_dump(), **changes})
    return record.model_copy(update={attr: updated})


def set_personal_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "personal_info", changes)


def set_marital_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "marital_info", changes)


def set_language_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "language_info", changes)


def set_passport_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "passport_info", changes)


def set_national_id_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "national_id_info", changes)


def set_us_pr_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "us_pr_info", changes)


def set_contact_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "contact_info", changes)


def set_study_details(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "study_details", changes)


def set_education_history(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "education_history", changes)


def set_background_info(record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
    return _update_section(record, "background_info", changes)


def set_employment_history(
    record: ApplicationRecord,
    entries: list[EmploymentEntry | Mapping[str, Any]],
) -> ApplicationRecord:
    items = [
        e if isinstance(e, EmploymentEntry) else EmploymentEntry.model_validate(dict(e))
        for e in entries
    ]
    return record.model_copy(update={"employment_history": items})
