#!/usr/bin/env python3
"""
ClaimGuard - Streamlit front end.
Thin presentation layer over AuditSession.

Run with: streamlit run src/claimguard/app.py
"""

import asyncio
import os
from decimal import Decimal

import pandas as pd
import streamlit as st

from claimguard.adjudication import AdjudicationGateway, GeminiAdjudicator, GeminiBillExtractor
from claimguard.config import configure_logging, get_settings
from claimguard.core import AuditLedger, ClaimGuardError, JsonFileSlot
from claimguard.core import presets
from claimguard.core.models import AdmissionType, Decision, Gender, PreAuthStatus
from claimguard.ingestion import BillIngestionNormalizer
from claimguard.reporting import (
    AuditReportFormatter,
    FinancialBreakdown,
    encode,
    report_filename,
    to_excel,
)
from claimguard.reporting.report import EXCEL_MIME
from claimguard.session import AuditSession

st.set_page_config(
    page_title="ClaimGuard AI",
    page_icon="🛡️",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
    <style>
    .main-header { font-size: 2rem; font-weight: 600; color: #201F1E; margin-bottom: 0.25rem; }
    .sub-header { font-size: 0.95rem; color: #605E5C; margin-bottom: 1.5rem; }
    .decision-approved { color: #107C10; font-weight: 700; }
    .decision-rejected { color: #D13438; font-weight: 700; }
    .decision-partial { color: #FF8C00; font-weight: 700; }
    </style>
    """,
    unsafe_allow_html=True,
)

DECISION_CLASSES = {
    Decision.APPROVED: "decision-approved",
    Decision.REJECTED: "decision-rejected",
    Decision.PARTIAL_APPROVAL: "decision-partial",
}

UPLOAD_TYPES = ["png", "jpg", "jpeg", "webp", "pdf", "csv", "txt", "xlsx"]


@st.cache_resource
def get_ledger() -> AuditLedger:
    """Process-wide history, loaded once at startup."""
    ledger = AuditLedger(JsonFileSlot(get_settings().ledger_path))
    asyncio.run(ledger.load())
    return ledger


def resolve_api_key() -> str:
    """Prefer Streamlit secrets, then settings/environment, then manual input."""
    try:
        if "GOOGLE_API_KEY" in st.secrets:
            st.success("API Key configured via Streamlit Secrets")
            return st.secrets["GOOGLE_API_KEY"]
    except FileNotFoundError:
        pass

    settings = get_settings()
    default = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else ""
    return st.text_input(
        "Google Gemini API Key",
        type="password",
        value=default or os.environ.get("GOOGLE_API_KEY", ""),
        key="api_key_input",
    )


def get_session(api_key: str) -> AuditSession:
    """One AuditSession per browser session, rebuilt if the key changes."""
    session: AuditSession | None = st.session_state.get("audit_session")
    if session is not None and st.session_state.get("audit_session_key") == api_key:
        return session

    settings = get_settings()
    adjudicator = GeminiAdjudicator(api_key=api_key, model=settings.model, temperature=settings.temperature)
    extractor = GeminiBillExtractor(api_key=api_key, model=settings.model, temperature=settings.temperature)
    new_session = AuditSession(
        gateway=AdjudicationGateway(adjudicator, timeout=settings.request_timeout),
        ledger=get_ledger(),
        normalizer=BillIngestionNormalizer(extractor),
        form=session.form if session is not None else None,
    )
    st.session_state.audit_session = new_session
    st.session_state.audit_session_key = api_key
    return new_session


def _choice_index(options: list[str], value: str) -> int:
    return options.index(value) if value in options else 0


def render_patient_tab(session: AuditSession) -> None:
    form = session.form
    labels = [profile["label"] for profile in presets.PATIENT_PROFILES]
    profile = st.selectbox("Patient profile", ["-", *labels, "Manual entry"], key="patient_profile")
    if st.button("Apply profile", key="btn_profile") and profile != "-":
        form.apply_patient_profile(
            presets.MANUAL_PROFILE if profile == "Manual entry" else labels.index(profile)
        )
    disease = st.selectbox("Diagnosis preset", ["-", *presets.DISEASE_PRESETS], key="disease_preset")
    if st.button("Apply diagnosis", key="btn_disease") and disease != "-":
        form.apply_disease_preset(disease)

    patient = form.patient
    genders = [g.value for g in Gender]
    admissions = [a.value for a in AdmissionType]
    patient["name"] = st.text_input("Patient name", value=patient.get("name", ""))
    patient["age"] = st.number_input("Age", min_value=0, step=1, value=int(patient.get("age", 0)))
    patient["gender"] = st.selectbox("Gender", genders, index=_choice_index(genders, patient.get("gender", "")))
    patient["diagnosis_code"] = st.text_input("Diagnosis (ICD-10)", value=patient.get("diagnosis_code", ""))
    patient["procedure_code"] = st.text_input("Procedure (CPT)", value=patient.get("procedure_code", ""))
    patient["admission_type"] = st.selectbox(
        "Admission type", admissions, index=_choice_index(admissions, patient.get("admission_type", ""))
    )
    patient["length_of_stay"] = st.number_input(
        "Length of stay (days)", min_value=0, step=1, value=int(patient.get("length_of_stay", 0))
    )


def render_policy_tab(session: AuditSession) -> None:
    form = session.form
    providers = list(presets.INSURANCE_PRESETS)
    policy = form.policy
    provider = st.selectbox(
        "Insurance provider", providers, index=_choice_index(providers, policy.get("provider_name", ""))
    )
    if provider != policy.get("provider_name"):
        form.apply_insurance_preset(provider)
        policy = form.policy

    statuses = [s.value for s in PreAuthStatus]
    policy["policy_number"] = st.text_input("Policy number", value=policy.get("policy_number", ""))
    policy["sum_insured"] = Decimal(str(st.number_input("Sum insured", min_value=0.0, value=float(policy.get("sum_insured", 0)))))
    policy["remaining_sum_insured"] = Decimal(str(st.number_input(
        "Remaining sum insured", min_value=0.0, value=float(policy.get("remaining_sum_insured", 0))
    )))
    policy["copay_percentage"] = Decimal(str(st.number_input(
        "Co-pay %", min_value=0.0, max_value=100.0, value=float(policy.get("copay_percentage", 0))
    )))
    policy["room_rent_limit"] = Decimal(str(st.number_input(
        "Room rent limit / day", min_value=0.0, value=float(policy.get("room_rent_limit", 0))
    )))
    policy["waiting_period_served"] = st.checkbox("Waiting period served", value=bool(policy.get("waiting_period_served", False)))
    policy["pre_auth_status"] = st.selectbox(
        "Pre-authorization", statuses, index=_choice_index(statuses, policy.get("pre_auth_status", ""))
    )
    policy["exclusions"] = st.text_area("Exclusions", value=policy.get("exclusions", ""))


def render_bill_tab(session: AuditSession) -> None:
    form = session.form
    uploaded = st.file_uploader("Upload bill (image, PDF, CSV or Excel)", type=UPLOAD_TYPES, key="bill_upload")
    if uploaded is not None and st.button("Extract items", key="btn_extract"):
        with st.spinner("Reading bill..."):
            try:
                items = asyncio.run(session.ingest_file(uploaded.name, uploaded.getvalue(), uploaded.type or ""))
                st.success(f"Added {len(items)} item(s) from {uploaded.name}")
            except ClaimGuardError as exc:
                st.error(f"Failed to read bill: {exc}")

    for draft in list(form.bill_items):
        cols = st.columns([4, 1, 2, 2, 1])
        name = cols[0].text_input("Service", value=draft.service_name, key=f"name_{draft.id}")
        qty = cols[1].number_input("Qty", min_value=0, step=1, value=int(draft.quantity), key=f"qty_{draft.id}")
        price = cols[2].number_input("Price", min_value=0.0, value=float(draft.unit_price), key=f"price_{draft.id}")
        if name != draft.service_name:
            draft.update("service_name", name)
        if qty != draft.quantity:
            draft.update("quantity", qty)
        if Decimal(str(price)) != Decimal(str(draft.unit_price)):
            draft.update("unit_price", Decimal(str(price)))
        cols[3].metric("Total", f"₹{draft.total_price:,.2f}")
        if cols[4].button("✕", key=f"rm_{draft.id}"):
            form.remove_item(draft.id)
            st.rerun()

    if st.button("Add item", key="btn_add_item"):
        form.add_item()
        st.rerun()

    override = st.checkbox("Override total claim amount", value=form.has_manual_total, key="chk_override")
    if override:
        amount = st.number_input("Total claim amount", min_value=0.0, value=float(form.displayed_total), key="manual_total")
        form.pin_total(amount)
    else:
        form.clear_total_override()
    st.markdown(f"**Total claim amount:** ₹{form.displayed_total:,.2f}")


def render_result(session: AuditSession) -> None:
    result = session.result
    breakdown = FinancialBreakdown.from_result(result)

    st.markdown(
        f'<p class="{DECISION_CLASSES[result.decision]}">{result.decision.value.replace("_", " ")}</p>',
        unsafe_allow_html=True,
    )
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Confidence", f"{result.confidence_score:.0f}%")
    col2.metric("Total Billed", f"₹{breakdown.total_billed:,.2f}")
    col3.metric("Approved", f"₹{breakdown.approved:,.2f}")
    col4.metric("Deducted", f"₹{breakdown.deducted:,.2f}", delta=f"{breakdown.approval_rate:.1f}% approved")
    st.write(result.summary)

    checks = result.policy_check
    st.markdown("### Policy Checks")
    st.dataframe(
        pd.DataFrame(
            [
                ("Room rent limit met", checks.limit_met),
                ("Exclusions found", checks.exclusions_found),
                ("Waiting period served", checks.waiting_period_met),
                ("Pre-auth valid", checks.pre_auth_valid),
            ],
            columns=["Check", "Result"],
        ),
        hide_index=True,
        use_container_width=True,
    )

    if result.rejection_reasons:
        st.markdown("### Rejection Reasons")
        for reason in result.rejection_reasons:
            st.error(reason)
    if result.correction_steps:
        st.markdown("### Correction Steps")
        for i, step in enumerate(result.correction_steps, 1):
            st.markdown(f"{i}. {step}")

    report = encode(result)
    st.markdown("### Line Item Analysis")
    st.dataframe(report.line_items, hide_index=True, use_container_width=True)

    exp1, exp2 = st.columns(2)
    exp1.download_button(
        "Download Report",
        data=to_excel(report),
        file_name=report_filename(result),
        mime=EXCEL_MIME,
        key="btn_xlsx_dl",
    )
    exp2.download_button(
        "Download Text Report",
        data=AuditReportFormatter(result).to_text(),
        file_name=f"audit_report_{result.claim_id}.txt",
        mime="text/plain",
        key="btn_txt_dl",
    )


def main() -> None:
    configure_logging()
    st.markdown('<p class="main-header">ClaimGuard AI</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Medical claim audit & adjudication</p>', unsafe_allow_html=True)

    with st.sidebar:
        st.subheader("API Settings")
        api_key = resolve_api_key()
        if not api_key:
            st.warning("Enter your Gemini API key to enable AI analysis")
            return
        session = get_session(api_key)

        form = session.form
        form.auditor_name = st.selectbox(
            "Assigned auditor",
            presets.AUDITOR_PROFILES,
            index=_choice_index(presets.AUDITOR_PROFILES, form.auditor_name),
        )
        st.caption(f"Claim ID: {form.claim_id or '(assigned on submit)'}")

        st.markdown("---")
        st.subheader("Audit History")
        history = session.ledger.entries
        if history:
            labels = [f"{r.claim_id} · {r.decision.value} · {r.audit_timestamp:%Y-%m-%d}" for r in history]
            picked = st.selectbox("Past audits", range(len(history)), format_func=labels.__getitem__)
            if st.button("Open", key="btn_open_past"):
                session.open_past(history[picked].claim_id)
        else:
            st.caption("No audits recorded yet")

        if session.result is not None and st.button("New Audit", key="btn_reset"):
            session.reset(new_form=True)
            st.rerun()

    left, right = st.columns([5, 7])
    with left:
        patient_tab, policy_tab, bill_tab = st.tabs(["Patient", "Policy", "Bill"])
        with patient_tab:
            render_patient_tab(session)
        with policy_tab:
            render_policy_tab(session)
        with bill_tab:
            render_bill_tab(session)

        if st.button("Run Audit", type="primary", use_container_width=True, key="btn_audit"):
            with st.spinner("Analyzing claim..."):
                try:
                    asyncio.run(session.submit())
                except ClaimGuardError:
                    pass  # kept on session.error and shown below

    with right:
        if session.error is not None:
            st.error(f"Audit Failed: {session.error}")
        if session.persistence_warning:
            st.warning(session.persistence_warning)
        if session.result is not None:
            render_result(session)
        elif session.error is None:
            st.info("Fill out the claim details, then run the audit.")


if __name__ == "__main__":
    main()
