from __future__ import annotations

from typing import Any

import streamlit as st

from accounts_csv import build_csv, entries_from_array, parse_manual_input
from excel_questions import PREVIEW_LIMIT
from errors import FormatError, TransportError
from licences import BUCKET_9, BUCKET_17, bucket_workbook, licence_from_filename, partition_files
from models import Image
from moodle_api import category_label, course_label, list_courses, list_question_categories, site_info
from runlog import SessionLog
from session import SLOT_ANSWER, SLOT_FEEDBACK, SLOT_TITLE, SOURCE_TABULAR, SOURCE_WORD, ConverterSession
from settings import (
    DEFAULT_BUCKET_9_FILENAME,
    DEFAULT_BUCKET_17_FILENAME,
    DEFAULT_CATEGORY,
    DEFAULT_CSV_FILENAME,
    DEFAULT_XML_FILENAME,
    get_setting,
)
from spreadsheet import read_array

TOOLS = [
    "Excel → Moodle XML",
    "Word → Moodle XML",
    "Account import CSV",
    "Sumup licences",
]


def ss_init(key: str, value: Any) -> None:
    if key not in st.session_state:
        st.session_state[key] = value


ss_init("moodle_url", get_setting("MOODLE_URL"))
ss_init("moodle_token", get_setting("MOODLE_TOKEN"))
ss_init("moodle_connected", False)
ss_init("site", None)
ss_init("courses_cache", None)
ss_init("selected_course_id", None)
ss_init("selected_category_id", None)
ss_init("excel_session", ConverterSession())
ss_init("word_session", ConverterSession())
ss_init("upload_run_id", 0)
ss_init("licence_log", SessionLog())
ss_init("accounts_log", SessionLog())


def show_log(log: SessionLog) -> None:
    if log.entries:
        st.code("\n".join(log.lines()))


st.set_page_config(page_title="Moodle QCM tools", layout="wide")
st.title("Moodle QCM tools")


# ===================================================
# Sidebar: Moodle connection + tool
# ===================================================
with st.sidebar:
    tool = st.selectbox("Tool", TOOLS, index=0)

    with st.expander("🔐 Moodle", expanded=not st.session_state.moodle_connected):
        st.session_state.moodle_url = st.text_input("Moodle URL", value=st.session_state.moodle_url).strip()
        st.session_state.moodle_token = st.text_input("Web service token", value=st.session_state.moodle_token, type="password")
        c_test, c_out = st.columns(2)
        if c_test.button("Test connection", use_container_width=True):
            try:
                info = site_info(st.session_state.moodle_url, st.session_state.moodle_token)
                st.session_state.moodle_connected = True
                st.session_state.site = info
                st.session_state.courses_cache = None
            except TransportError as e:
                st.session_state.moodle_connected = False
                st.session_state.site = None
                st.error(f"Connection failed: {e}")
        if c_out.button("Disconnect", use_container_width=True):
            st.session_state.moodle_connected = False
            st.session_state.site = None
            st.session_state.courses_cache = None
            st.session_state.selected_course_id = None
            st.session_state.selected_category_id = None

        if st.session_state.moodle_connected and st.session_state.site:
            site = st.session_state.site
            st.caption(f"Connected to {site.get('sitename', '')} as {site.get('fullname', '')}")
        else:
            st.caption("Token login only.")

    if st.session_state.moodle_connected:
        with st.expander("✅ Question bank", expanded=not st.session_state.selected_category_id):
            try:
                if st.session_state.courses_cache is None:
                    st.session_state.courses_cache = list_courses(st.session_state.moodle_url, st.session_state.moodle_token)
                courses = st.session_state.courses_cache or []
                if not courses:
                    st.warning("No course found with the required permissions.")
                else:
                    labels = [course_label(c) for c in courses]
                    chosen = st.selectbox("Course", list(range(len(courses))), format_func=lambda i: labels[i])
                    st.session_state.selected_course_id = courses[chosen].get("id")
                    categories = list_question_categories(
                        st.session_state.moodle_url, st.session_state.moodle_token, st.session_state.selected_course_id
                    )
                    if not categories:
                        st.warning("No question bank found for this course.")
                        st.session_state.selected_category_id = None
                    else:
                        cat_idx = st.selectbox(
                            "Question bank",
                            list(range(len(categories))),
                            format_func=lambda i: category_label(categories[i]),
                        )
                        st.session_state.selected_category_id = categories[cat_idx].get("id")
                if st.button("Refresh courses", use_container_width=True):
                    st.session_state.courses_cache = None
                    st.rerun()
            except TransportError as e:
                st.error(f"Failed to load courses: {e}")


def xml_outputs(sess: ConverterSession, key: str) -> None:
    st.divider()
    c1, c2 = st.columns(2)
    category_name = c1.text_input("Category name", value=DEFAULT_CATEGORY, key=f"{key}_category")
    output_filename = c2.text_input("Output file", value=DEFAULT_XML_FILENAME, key=f"{key}_filename")

    b1, b2, b3 = st.columns(3)
    if b1.button("Generate XML", type="primary", use_container_width=True, key=f"{key}_gen", disabled=not sess.loaded):
        sess.log.clear()
        xml = sess.generate_xml(category_name)
        if xml is not None:
            st.session_state[f"{key}_xml"] = xml
    can_import = sess.loaded and st.session_state.moodle_connected and bool(st.session_state.selected_category_id)
    if b2.button("Import into Moodle", use_container_width=True, key=f"{key}_import", disabled=not can_import):
        sess.log.clear()
        result = sess.push_to_moodle(
            st.session_state.moodle_url,
            st.session_state.moodle_token,
            st.session_state.selected_category_id,
            category_name,
        )
        if result is not None and result.success:
            st.session_state.courses_cache = None
    if b3.button("Clear", use_container_width=True, key=f"{key}_clear"):
        sess.clear()
        st.session_state.pop(f"{key}_xml", None)
        st.session_state.upload_run_id += 1
        st.rerun()

    xml = st.session_state.get(f"{key}_xml")
    if xml:
        st.download_button(
            "⬇️ Download XML",
            data=xml.encode("utf-8"),
            file_name=(output_filename or "").strip() or DEFAULT_XML_FILENAME,
            mime="application/xml",
        )


# ===================================================
# Excel → Moodle XML
# ===================================================
def page_excel() -> None:
    sess: ConverterSession = st.session_state.excel_session
    st.subheader("1) Upload spreadsheet")
    uploaded = st.file_uploader("Spreadsheet", type=["xlsx", "xlsm"], key=f"excel_{st.session_state.upload_run_id}")
    if uploaded is not None and uploaded.name != sess.filename:
        sess.load_spreadsheet(uploaded.getvalue(), uploaded.name)
        st.session_state.pop("excel_xml", None)

    if sess.source == SOURCE_TABULAR and sess.rows:
        st.subheader("2) Preview")
        st.dataframe(sess.preview(), use_container_width=True)
        if len(sess.rows) > PREVIEW_LIMIT:
            st.caption(f"... and {len(sess.rows) - PREVIEW_LIMIT} more question(s)")

    xml_outputs(sess, "excel")
    show_log(sess.log)


# ===================================================
# Word → Moodle XML
# ===================================================
def image_input(sess: ConverterSession, q_idx: int, slot: str, current, label: str, answer_index: int | None = None) -> None:
    run = st.session_state.upload_run_id
    suffix = f"{q_idx}_{slot}_{answer_index}"
    want = st.checkbox(label, value=isinstance(current, Image), key=f"{run}_img_chk_{suffix}")
    if not want:
        if isinstance(current, Image):
            sess.detach_image(q_idx, slot, answer_index)
        return
    if isinstance(current, Image):
        st.image(current.data, caption=current.name, width=150)
    f = st.file_uploader("Image", type=None, key=f"{run}_img_{suffix}", label_visibility="collapsed")
    if f is not None and (not isinstance(current, Image) or current.name != f.name):
        sess.attach_image(q_idx, slot, f.getvalue(), f.name, f.type or "", answer_index)


def page_word() -> None:
    sess: ConverterSession = st.session_state.word_session
    st.subheader("1) Upload Word document")
    uploaded = st.file_uploader("DOCX", type=["docx", "doc"], key=f"word_{st.session_state.upload_run_id}")
    if uploaded is not None and uploaded.name != sess.filename:
        sess.load_word_document(uploaded.getvalue(), uploaded.name)
        st.session_state.pop("word_xml", None)

    if sess.source == SOURCE_WORD and sess.corrections:
        st.subheader("Corrections")
        cols = st.columns(min(len(sess.corrections), 6))
        for idx, corr in enumerate(sess.corrections):
            cols[idx % len(cols)].metric(f"Question {idx + 1}", ", ".join(corr.correct_letters))

    if sess.source == SOURCE_WORD and sess.questions:
        st.subheader("2) Questions")
        run = st.session_state.upload_run_id
        for q_idx, q in enumerate(sess.questions):
            with st.expander(f"Question {q.id} - {q.title[:90]}"):
                image_input(sess, q_idx, SLOT_TITLE, q.title_image, "Add an image to the question")
                for a_idx, a in enumerate(q.answers):
                    checked = st.checkbox(f"{a.letter}  {a.text}", value=a.is_correct, key=f"{run}_q{q_idx}_a{a_idx}")
                    if checked != a.is_correct:
                        sess.toggle_answer(q_idx, a_idx, checked)
                    image_input(sess, q_idx, SLOT_ANSWER, a.image, "+ Image", a_idx)
                st.caption(f"Correct: {', '.join(q.correct_letters()) or 'none'}")
                fb = st.text_area("General feedback", value=q.general_feedback, key=f"{run}_fb_{q_idx}", height=80)
                if fb != q.general_feedback:
                    sess.update_feedback(q_idx, fb)
                image_input(sess, q_idx, SLOT_FEEDBACK, q.feedback_image, "Add an image to the feedback")

    xml_outputs(sess, "word")
    show_log(sess.log)


# ===================================================
# Account import CSV
# ===================================================
def page_accounts() -> None:
    log: SessionLog = st.session_state.accounts_log
    tab_manual, tab_file = st.tabs(["Manual input", "File"])
    entries = []
    with tab_manual:
        text = st.text_area("anonymat / email, one per line", height=200)
        if text.strip():
            entries, skipped = parse_manual_input(text)
            if skipped:
                st.caption(f"{skipped} line(s) ignored")
    with tab_file:
        f = st.file_uploader("Spreadsheet (column A: anonymat, column B: email)", type=["xlsx", "xlsm"])
        if f is not None and not text.strip():
            try:
                entries, skipped = entries_from_array(read_array(f.getvalue()))
                if skipped:
                    st.warning(f"{skipped} row(s) ignored (missing or invalid data)")
            except FormatError as e:
                st.error(f"Reading failed: {e}")

    if entries:
        st.caption(f"{len(entries)} entrie(s) detected")
        st.dataframe([{"Anonymat": e.anonymat, "Email": e.email} for e in entries[:10]], use_container_width=True)

    c1, c2 = st.columns(2)
    cohort_id = c1.text_input("Cohort id (optional)").strip()
    output = c2.text_input("Output file", value=DEFAULT_CSV_FILENAME).strip() or DEFAULT_CSV_FILENAME
    if entries:
        csv_content = build_csv(entries, cohort_id)
        if st.download_button("⬇️ Download CSV", data=csv_content.encode("utf-8"), file_name=output, mime="text/csv"):
            log.clear()
            log.success(f"CSV file created: {output} ({len(entries)} user(s))")
            if cohort_id:
                log.info(f"Cohort: {cohort_id}")
    show_log(log)


# ===================================================
# Sumup licences
# ===================================================
def page_licences() -> None:
    log: SessionLog = st.session_state.licence_log
    files = st.file_uploader("Excel files (.xlsx)", type=["xlsx"], accept_multiple_files=True)
    unique: dict[str, bytes] = {}
    for f in files or []:
        if f.name in unique:
            st.warning(f"File already loaded: {f.name}")
            continue
        unique[f.name] = f.getvalue()
        st.caption(f"📄 {f.name} → Licence: {licence_from_filename(f.name)}")

    c1, c2 = st.columns(2)
    out17 = c1.text_input("1/7 output", value=DEFAULT_BUCKET_17_FILENAME).strip() or DEFAULT_BUCKET_17_FILENAME
    out9 = c2.text_input("9 output", value=DEFAULT_BUCKET_9_FILENAME).strip() or DEFAULT_BUCKET_9_FILENAME

    if st.button("Process", type="primary", disabled=not unique):
        log.clear()
        result = partition_files(list(unique.items()), log)
        st.session_state.licence_result = result

    result = st.session_state.get("licence_result")
    if result is not None:
        st.markdown(f"**Total students: {result.total}**")
        st.dataframe(
            [
                {
                    "Licence": lic,
                    "Total": result.totals[lic],
                    "1/7": result.counts[BUCKET_17].get(lic, 0),
                    "9": result.counts[BUCKET_9].get(lic, 0),
                }
                for lic in sorted(result.totals)
            ],
            use_container_width=True,
        )
        d1, d2 = st.columns(2)
        if result.bucket_17:
            d1.download_button(f"⬇️ {out17} ({len(result.bucket_17)})", data=bucket_workbook(result.bucket_17), file_name=out17)
        else:
            d1.warning("No student number starting with 1 or 7")
        if result.bucket_9:
            d2.download_button(f"⬇️ {out9} ({len(result.bucket_9)})", data=bucket_workbook(result.bucket_9), file_name=out9)
        else:
            d2.warning("No student number starting with 9")
    show_log(log)


if tool == TOOLS[0]:
    page_excel()
elif tool == TOOLS[1]:
    page_word()
elif tool == TOOLS[2]:
    page_accounts()
else:
    page_licences()
