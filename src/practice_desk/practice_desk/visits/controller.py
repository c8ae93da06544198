from __future__ import annotations

import csv
import io

from flask import Flask, jsonify, request

from ..common.http import arg_date, arg_int, json_api, privileged_only
from ..container import Container
from .model import VisitFilters
from .service import CSV_FIELDS


def register(app: Flask, container: Container) -> None:
    aggregator = container.visit_aggregator

    def _filters() -> VisitFilters:
        return VisitFilters(
            client_id=request.args.get("client_id") or None,
            employee_id=request.args.get("employee_id") or None,
            start_date=arg_date("start_date"),
            end_date=arg_date("end_date"),
            search=request.args.get("search") or None,
            limit=arg_int("limit"),
        )

    @app.route("/api/client-visits", methods=["GET"], endpoint="list_client_visits")
    @json_api
    @privileged_only
    def list_client_visits():
        visits = aggregator.list_visits(_filters())
        return jsonify({"success": True, "visits": [v.to_dict() for v in visits], "count": len(visits)})

    @app.route("/api/client-visits/stats", methods=["GET"], endpoint="client_visit_stats")
    @json_api
    @privileged_only
    def client_visit_stats():
        stats = aggregator.visit_stats(_filters())
        return jsonify({"success": True, **stats.to_dict()})

    @app.route("/api/client-visits/monthly-report", methods=["GET"], endpoint="client_visit_monthly_report")
    @json_api
    @privileged_only
    def client_visit_monthly_report():
        reports = aggregator.monthly_report(_filters())
        return jsonify(
            {
                "success": True,
                "data": [r.to_dict() for r in reports],
                "total_clients": len(reports),
                "total_visits": sum(r.total_visits for r in reports),
            }
        )

    @app.route(
        "/api/client-visits/monthly-report.csv",
        methods=["GET"],
        endpoint="client_visit_monthly_report_csv",
    )
    @json_api
    @privileged_only
    def client_visit_monthly_report_csv():
        filters = _filters()
        rows = aggregator.csv_rows(aggregator.monthly_report(filters))

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        suffix = ""
        if filters.start_date and filters.end_date:
            suffix = f"_{filters.start_date.strftime('%Y%m%d')}_{filters.end_date.strftime('%Y%m%d')}"
        return app.response_class(
            out.getvalue().encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=client_visits{suffix}.csv"},
        )
