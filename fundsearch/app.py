import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from fundsearch.config import Settings
from fundsearch.errors import CatalogLoadError, InvalidQueryError
from fundsearch.services.search import SearchQuery
from fundsearch.services.service import FundSearchService

logger = logging.getLogger(__name__)

BULK_RESULTS_PER_QUERY = 5
MIN_AUTOCOMPLETE_LENGTH = 2


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


def _split(value):
    return [v.strip() for v in value.split(",") if v.strip()]


def _error(status, message, details=None):
    body = {
        "success": False,
        "error": message,
        "details": details,
        "timestamp": _timestamp(),
    }
    return jsonify(body), status


def parse_search_args(args):
    """
    Build a SearchQuery from query-string parameters.

    List filters are comma separated (fundHouse=HDFC Mutual Fund,Tata Mutual Fund);
    ranges are "min,max". sortOrder defaults to desc once sortBy is given.
    """
    filters = {}
    for name in ("fundHouse", "category", "plan", "riskLevel"):
        if args.get(name):
            filters[name] = _split(args[name])
    for name in ("aumRange", "expenseRatioRange"):
        if args.get(name):
            filters[name] = _split(args[name])

    data = {
        "text": args.get("q") or "",
        "filters": filters,
        "limit": args.get("limit"),
        "offset": args.get("offset"),
    }
    if args.get("sortBy"):
        data["sortBy"] = args["sortBy"]
        data["sortOrder"] = args.get("sortOrder") or "desc"
    return SearchQuery.from_dict(data)


def _result_payload(result):
    return {
        "fund": result.document.to_dict(),
        "relevanceScore": round(result.score, 6),
        "matchedTerms": list(result.matched_terms),
        "explanation": result.explanation,
    }


def create_app(service=None, settings=None):
    settings = settings or Settings.from_env()
    service = service or FundSearchService.from_settings(settings)

    app = Flask(__name__)
    CORS(app)
    app.config["SEARCH_SERVICE"] = service

    if settings.eager_init:
        service.initialize()

    @app.errorhandler(InvalidQueryError)
    def handle_invalid_query(exc):
        return _error(400, "Invalid search request", str(exc))

    @app.errorhandler(CatalogLoadError)
    def handle_catalog_error(exc):
        return _error(503, "Search service unavailable", str(exc))

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Search API error")
        return _error(500, "Search service error", "Internal error")

    @app.route("/api/search", methods=["GET"])
    def search():
        query = parse_search_args(request.args)
        logger.debug("Executing search: %s", query.to_dict())
        response = service.search(query)

        return jsonify({
            "success": True,
            "data": [_result_payload(r) for r in response.results],
            "meta": {
                "total": response.total,
                "searchTime": response.search_time,
                "hasMore": response.has_more,
                "limit": query.limit,
                "offset": query.offset,
            },
            "suggestions": response.suggestions,
            "facets": response.facets,
            "timestamp": _timestamp(),
        })

    @app.route("/api/search", methods=["POST"])
    def search_post():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error(400, "Request body must be a JSON object")
        action = body.get("action")

        if action == "advancedSearch":
            query = SearchQuery.from_dict(body.get("query"))
            response = service.search(query)
            payload = response.to_dict()
            return jsonify({
                "success": True,
                "data": payload["results"],
                "meta": {
                    "total": response.total,
                    "searchTime": response.search_time,
                    "hasMore": response.has_more,
                },
                "suggestions": response.suggestions,
                "facets": response.facets,
                "appliedQuery": query.to_dict(),
                "timestamp": _timestamp(),
            })

        if action == "bulkSearch":
            queries = body.get("queries")
            if not isinstance(queries, list):
                return _error(400, "queries must be an array")
            parsed = [SearchQuery.from_dict(q) for q in queries]
            data = []
            for query in parsed:
                response = service.search(query)
                data.append({
                    "query": query.to_dict(),
                    "results": [r.to_dict() for r in response.results[:BULK_RESULTS_PER_QUERY]],
                    "total": response.total,
                })
            return jsonify({"success": True, "data": data, "timestamp": _timestamp()})

        return _error(400, "Invalid action. Supported: advancedSearch, bulkSearch")

    @app.route("/api/search/autocomplete")
    def autocomplete():
        q = request.args.get("q") or ""
        if len(q) < MIN_AUTOCOMPLETE_LENGTH:
            return jsonify({
                "success": True,
                "data": [],
                "message": "Query too short for autocomplete",
            })
        return jsonify({
            "success": True,
            "data": service.autocomplete(q),
            "query": q,
            "timestamp": _timestamp(),
        })

    @app.route("/api/search/health")
    def health():
        data = service.get_health()
        status = 503 if data["status"] == "failed" else 200
        return jsonify({"success": status == 200, "data": data, "timestamp": _timestamp()}), status

    @app.route("/api/search/analytics")
    def analytics():
        return jsonify({"success": True, "data": service.analytics(), "timestamp": _timestamp()})

    @app.route("/api/funds/<int:scheme_code>")
    def get_fund(scheme_code):
        document = service.get_document(scheme_code)
        if document is None:
            return _error(404, f"Fund {scheme_code} not found")
        return jsonify({"success": True, "data": document.to_dict(), "timestamp": _timestamp()})

    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app(settings=settings)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
