import logging
from datetime import datetime
from flask import Blueprint, jsonify, request, send_file
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet
from io import BytesIO
from xml.sax.saxutils import escape

from utils.auth_utils import ROLE_TEACHER, require_course, role_required
from utils.course_summary import compute_course_scores, load_attendance_matrix, load_course_snapshot
from utils.errors import ScoringError, error_response
from utils.export_utils import (
    SORT_MODES,
    SORT_ROLL_ASC,
    export_filename,
    shape_attendance_sheet,
    shape_marksheet,
)
from utils.spreadsheet import XLSX_MIMETYPE, write_workbook
from utils.statistics_utils import calculate_course_statistics

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__)


def _sort_mode():
    mode = request.args.get("sort", SORT_ROLL_ASC)
    return mode if mode in SORT_MODES else None


def _course_title(course) -> str:
    return f"{course.code} {course.title}".strip()


def _marksheet(course, sort_mode):
    snapshot = load_course_snapshot(course.id, course.course_type)
    scores = compute_course_scores(snapshot)
    table = shape_marksheet(
        snapshot.students,
        snapshot.assessments,
        snapshot.marks_table,
        scores,
        sort_mode,
        title=f"{_course_title(course)} Marksheet",
    )
    return table, scores


@reports_bp.route("/api/export/courses/<int:course_id>/marksheet.xlsx", methods=["GET"])
@role_required(ROLE_TEACHER)
def export_marksheet_xlsx(course_id, caller):
    """Export course marks, totals and grades as a spreadsheet."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied
    sort_mode = _sort_mode()
    if sort_mode is None:
        return jsonify({"error": "invalid_sort"}), 400

    try:
        table, _ = _marksheet(course, sort_mode)
        filename = export_filename(course.to_dict(), "Marksheet", "xlsx")
        logger.info(f"Exporting marksheet for course {course_id} as {filename}")
        return send_file(
            write_workbook(table, sheet_title="Marksheet"),
            as_attachment=True,
            download_name=filename,
            mimetype=XLSX_MIMETYPE,
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error generating marksheet for course {course_id}: {str(e)}")
        return jsonify({"error": "Failed to generate report"}), 500


@reports_bp.route("/api/export/courses/<int:course_id>/marksheet.pdf", methods=["GET"])
@role_required(ROLE_TEACHER)
def export_marksheet_pdf(course_id, caller):
    """Export course marks, totals and grades as a PDF report."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied
    sort_mode = _sort_mode()
    if sort_mode is None:
        return jsonify({"error": "invalid_sort"}), 400

    try:
        table, scores = _marksheet(course, sort_mode)

        # Generate PDF
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=landscape(letter))
        styles = getSampleStyleSheet()
        elements = []

        elements.append(Paragraph(f"Marksheet - {escape(_course_title(course))}", styles["Title"]))
        elements.append(Spacer(1, 12))

        course_info_text = f"""
        Section: {escape(course.section or "-")}<br/>
        Semester: {escape(course.semester or "-")} {course.year or ""}<br/>
        Course type: {escape(course.course_type or "-")}<br/>
        Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
        """
        elements.append(Paragraph(course_info_text, styles["Normal"]))
        elements.append(Spacer(1, 20))

        data = [table.columns] + [[str(cell) for cell in row] for row in table.rows]
        grid = Table(data, repeatRows=1)
        grid.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                    ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                ]
            )
        )
        elements.append(grid)

        # Summary statistics
        stats = calculate_course_statistics([s.total for s in scores.values()])
        if stats["count"]:
            elements.append(Spacer(1, 20))
            elements.append(Paragraph("Summary Statistics:", styles["Heading2"]))
            stats_text = f"""
            Total Students: {stats['count']}<br/>
            Average Total: {stats['average']:.2f}<br/>
            Highest Total: {stats['top']:.2f}<br/>
            Lowest Total: {stats['lowest']:.2f}<br/>
            Pass Rate (40 and above): {stats['pass_rate']:.1f}%
            """
            elements.append(Paragraph(stats_text, styles["Normal"]))

        doc.build(elements)
        buffer.seek(0)

        filename = export_filename(course.to_dict(), "Marksheet", "pdf")
        logger.info(f"Exporting marksheet PDF for course {course_id} as {filename}")
        return send_file(
            buffer,
            as_attachment=True,
            download_name=filename,
            mimetype="application/pdf",
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error generating PDF report for course {course_id}: {str(e)}")
        return jsonify({"error": "Failed to generate report"}), 500


@reports_bp.route("/api/export/courses/<int:course_id>/attendance.xlsx", methods=["GET"])
@role_required(ROLE_TEACHER)
def export_attendance_xlsx(course_id, caller):
    """Export the attendance sheet (P/A per session) as a spreadsheet."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied
    sort_mode = _sort_mode()
    if sort_mode is None:
        return jsonify({"error": "invalid_sort"}), 400

    try:
        matrix = load_attendance_matrix(course_id)
        table = shape_attendance_sheet(
            matrix, sort_mode, title=f"{_course_title(course)} Attendance"
        )
        filename = export_filename(course.to_dict(), "Attendance", "xlsx")
        logger.info(f"Exporting attendance sheet for course {course_id} as {filename}")
        return send_file(
            write_workbook(table, sheet_title="Attendance"),
            as_attachment=True,
            download_name=filename,
            mimetype=XLSX_MIMETYPE,
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error generating attendance sheet for course {course_id}: {str(e)}")
        return jsonify({"error": "Failed to generate report"}), 500
