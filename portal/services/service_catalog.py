"""
Service catalog — static metadata for every service kind.

Provides:
    - SERVICE_CATALOG / ServiceMeta: names, department, SLA text, sla_days
    - STATUS_LABELS: en/ar label and display colour per status
    - service_meta(), status_meta(), category_for()
    - service_types_for_department(): department → constituent service kinds
    - request_summary(): one-line en/ar summary of an application

All lookups are pure; nothing here touches the database.
"""

from dataclasses import dataclass

from portal.core.exceptions import ValidationError

# ── Departments ──────────────────────────────────────────────────────────────

DEPT_BUSINESS_CONNECT = "Business Connect & Services"
DEPT_MEMBER_AFFAIRS = "Member Affairs"
DEPT_ADVOCACY = "Advocacy & Government Affairs"

DEPARTMENTS = {
    DEPT_BUSINESS_CONNECT: "ربط الأعمال والخدمات",
    DEPT_MEMBER_AFFAIRS: "شؤون الأعضاء",
    DEPT_ADVOCACY: "المناصرة والشؤون الحكومية",
}


@dataclass(frozen=True)
class ServiceMeta:
    service_type: str
    slug: str
    name_en: str
    name_ar: str
    department: str
    sla: str
    sla_ar: str
    sla_days: int | None

    @property
    def department_ar(self) -> str:
        return DEPARTMENTS.get(self.department, "")


_TBD_AR = "يُحدد لاحقاً"

SERVICE_CATALOG: dict[str, ServiceMeta] = {
    m.service_type: m
    for m in (
        ServiceMeta("KNOWLEDGE_SHARING", "knowledge-sharing",
                    "Knowledge Sharing & Upskilling", "برامج المعرفة والتطوير",
                    DEPT_BUSINESS_CONNECT, "1 day", "يوم واحد", 1),
        ServiceMeta("CHAMBER_BOOST", "chamber-boost",
                    "Chamber Boost", "تعزيز الغرفة",
                    DEPT_BUSINESS_CONNECT, "2 working days", "يومان عمل", 2),
        ServiceMeta("BUSINESS_MATCHMAKING", "business-matchmaking",
                    "Chamber Business Matchmaking", "مطابقة الأعمال",
                    DEPT_BUSINESS_CONNECT, "2–10 working days", "2-10 أيام عمل", 10),
        ServiceMeta("ESG_LABEL", "esg-label",
                    "Chamber ESG Label", "ختم الاستدامة للغرفة",
                    DEPT_BUSINESS_CONNECT, "TBD (multi-phase)", "يُحدد لاحقاً (متعدد المراحل)", None),
        ServiceMeta("BUSINESS_DEVELOPMENT", "business-development",
                    "Business Development Services", "خدمات تطوير الأعمال",
                    DEPT_BUSINESS_CONNECT, "2 working days", "يومان عمل", 2),
        ServiceMeta("BUSINESS_ENABLEMENT", "business-enablement",
                    "Business Enablement Advisory", "الاستشارات التمكينية للأعمال",
                    DEPT_BUSINESS_CONNECT, "TBD", _TBD_AR, None),
        ServiceMeta("POLICY_ADVOCACY", "policy-advocacy",
                    "Policy Advocacy", "المناصرة والسياسات",
                    DEPT_ADVOCACY, "Varies", "متغير", None),
        ServiceMeta("LOYALTY_PLUS", "loyalty-plus",
                    "ADCCI Loyalty Plus", "برنامج الولاء",
                    DEPT_BUSINESS_CONNECT, "TBD", _TBD_AR, None),
        ServiceMeta("AD_CONNECT_CONCIERGE", "ad-connect",
                    "AD Connect & Concierge", "أبوظبي كونكت والكونسيرج",
                    DEPT_MEMBER_AFFAIRS, "TBD", _TBD_AR, None),
    )
}

SERVICE_CATEGORIES = {
    "KNOWLEDGE_SHARING": ("Training & Capability Development", "التدريب وتطوير القدرات"),
    "CHAMBER_BOOST": ("Commercial", "تجاري"),
    "BUSINESS_MATCHMAKING": ("Networking & Facility Booking", "التواصل وحجز المرافق"),
    "ESG_LABEL": ("Certificates", "الشهادات"),
    "BUSINESS_DEVELOPMENT": ("Commercial", "تجاري"),
    "BUSINESS_ENABLEMENT": ("Commercial", "تجاري"),
    "POLICY_ADVOCACY": ("Policy Advocacy", "المناصرة والسياسات"),
    "LOYALTY_PLUS": ("Commercial", "تجاري"),
    "AD_CONNECT_CONCIERGE": ("Networking & Facility Booking", "التواصل وحجز المرافق"),
}

# status → (en, ar, colour)
STATUS_LABELS = {
    "SUBMITTED": ("Submitted", "مُقدَّم", "blue"),
    "UNDER_REVIEW": ("Under Review", "قيد المراجعة", "amber"),
    "APPROVED": ("Approved", "مُعتمد", "emerald"),
    "REJECTED": ("Rejected", "مرفوض", "red"),
    "PENDING_INFO": ("Requires Action", "يتطلب إجراء", "purple"),
    "CLOSED": ("Closed", "مغلق", "gray"),
    # Legacy
    "CORRECTIONS_REQUESTED": ("Corrections Requested", "تصحيحات مطلوبة", "amber"),
}


# ── Lookups ──────────────────────────────────────────────────────────────────

def service_meta(service_type: str) -> ServiceMeta | None:
    return SERVICE_CATALOG.get(service_type)


def sla_days_for(service_type: str) -> int | None:
    meta = SERVICE_CATALOG.get(service_type)
    return meta.sla_days if meta else None


def status_meta(status: str) -> dict:
    en, ar, color = STATUS_LABELS.get(status, (status, status, ""))
    return {"en": en, "ar": ar, "color": color}


def category_for(service_type: str) -> dict:
    en, ar = SERVICE_CATEGORIES.get(service_type, ("", ""))
    return {"en": en, "ar": ar}


def service_types_for_department(department: str) -> list[str]:
    """Return the service kinds owned by *department*.

    Raises ValidationError for an unknown department name.
    """
    if department not in DEPARTMENTS:
        raise ValidationError(
            f"Unknown department: {department}",
            details={"department": sorted(DEPARTMENTS)},
        )
    return [m.service_type for m in SERVICE_CATALOG.values() if m.department == department]


def service_labels(service_type: str) -> dict:
    """Localized service / department / category / SLA labels for one kind."""
    meta = service_meta(service_type)
    fallback = service_type.replace("_", " ")
    category = category_for(service_type)
    return {
        "service_name_en": meta.name_en if meta else fallback,
        "service_name_ar": meta.name_ar if meta else fallback,
        "department": meta.department if meta else "",
        "department_ar": meta.department_ar if meta else "",
        "category": category["en"],
        "category_ar": category["ar"],
        "sla": meta.sla if meta else "TBD",
        "sla_ar": meta.sla_ar if meta else _TBD_AR,
        "sla_days": meta.sla_days if meta else None,
    }


# ── Request summary ──────────────────────────────────────────────────────────

_QUERY_PREVIEW_CHARS = 80


def request_summary(service_type: str, extension: dict | None) -> dict:
    """
    One-line summary of a request, service-kind specific.

    ``extension`` is the extension's ``to_dict()`` (or an equivalent mapping
    built from a legacy record).  Missing fields degrade to the generic
    service name.
    """
    ext = extension or {}

    if service_type == "KNOWLEDGE_SHARING" and ext:
        request_type = ext.get("request_type")
        if request_type == "CALENDAR_BOOKING":
            name, name_ar = ext.get("program_name"), ext.get("program_name_ar")
            return {
                "en": f"Session booking: {name}" if name else "Session booking request",
                "ar": f"حجز جلسة: {name_ar}" if name_ar else "طلب حجز جلسة",
            }
        if request_type == "TRAINING_QUERY":
            text = ext.get("query_text") or ""
            preview = text[:_QUERY_PREVIEW_CHARS] + ("..." if len(text) > _QUERY_PREVIEW_CHARS else "")
            return {
                "en": preview or "Training query",
                "ar": preview or "استفسار تدريبي",
            }

    if service_type == "ESG_LABEL":
        sector = ext.get("sub_sector")
        return {
            "en": f"ESG Label Application — {sector}" if sector else "ESG Label Application",
            "ar": f"طلب ختم الاستدامة — {sector}" if sector else "طلب ختم الاستدامة",
        }

    labels = service_labels(service_type)
    return {"en": labels["service_name_en"], "ar": labels["service_name_ar"]}
