from flask import Blueprint, jsonify, request

from poscore.services import reporting_service
from poscore.time_utils import parse_business_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
def sales_report():
    try:
        start = parse_business_date(request.args.get("start"))
        end = parse_business_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    try:
        report = reporting_service.sales_report(start=start, end=end)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
