from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from flask import Blueprint, Response, current_app, jsonify, request

from ..exceptions import KoiExplorerError, MissingParameter, TransportError, UpstreamHTTPError, UpstreamParseError
from ..tap import parse_tap_json, perform_tap_query

logger = logging.getLogger(__name__)

proxy_bp = Blueprint('proxy', __name__)

ERROR_DETAILS_LIMIT = 500


def _tap(query: str, fmt: str = 'json') -> str:
    settings = current_app.config['KOI_SETTINGS']
    return perform_tap_query(query, fmt, url=settings.tap_url, timeout=settings.upstream_timeout)


def _invalid_format_response(body: str):
    return jsonify({
        'error': 'Invalid response format from NASA API',
        'details': body[:ERROR_DETAILS_LIMIT]
    }), 500


@proxy_bp.errorhandler(MissingParameter)
def _missing_parameter(exc: MissingParameter):
    return jsonify({'error': exc.message}), 400


def _upstream_error_response(exc: UpstreamHTTPError):
    if exc.status == 404:
        return jsonify({'error': 'NASA API endpoint not found'}), 404

    try:
        json.loads(exc.body)
    except ValueError:
        return _invalid_format_response(exc.body)

    return jsonify({
        'error': 'Failed to fetch data from NASA API',
        'details': f'HTTP {exc.status}: {exc.body[:ERROR_DETAILS_LIMIT]}'
    }), 500


# ---------------------------------------------------------------------------
# Query passthrough
# ---------------------------------------------------------------------------
@proxy_bp.route('/api/exoplanets', methods=['GET'])
def proxy_exoplanets():
    """Forward an ADQL query to the TAP service and relay its JSON body."""
    query = request.args.get('query')
    fmt = request.args.get('format', 'json')

    if not query:
        raise MissingParameter('Query parameter is required')

    try:
        body = _tap(query, fmt)
        parse_tap_json(body)
    except UpstreamHTTPError as exc:
        return _upstream_error_response(exc)
    except UpstreamParseError as exc:
        return _invalid_format_response(exc.body)
    except TransportError as exc:
        logger.error('Proxy error: %s', exc.message)
        return jsonify({'error': 'Failed to fetch data from NASA API'}), 500

    # Relay the body as received so row key order survives
    return Response(body, status=200, mimetype='application/json')


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------
@proxy_bp.route('/health', methods=['GET'])
def health_check():
    return jsonify({'status': 'OK', 'message': 'Proxy server is running'})


@proxy_bp.route('/tables', methods=['GET'])
def list_tables():
    tables_query = 'SELECT table_name FROM TAP_SCHEMA.tables'

    try:
        body = _tap(tables_query)
    except KoiExplorerError as exc:
        return jsonify({'success': False, 'error': exc.message, 'query': tables_query})

    try:
        table_names = [row['table_name'] for row in parse_tap_json(body)]
    except (KoiExplorerError, TypeError, KeyError):
        return jsonify({
            'success': False,
            'error': 'Failed to parse tables response',
            'rawResponse': body[:1000]
        })

    return jsonify({
        'success': True,
        'query': tables_query,
        'tableCount': len(table_names),
        'tables': sorted(table_names)
    })


@proxy_bp.route('/schema/<table_name>', methods=['GET'])
def table_schema(table_name: str):
    schema_query = f"SELECT column_name FROM TAP_SCHEMA.columns WHERE table_name = '{table_name}'"

    try:
        body = _tap(schema_query)
    except KoiExplorerError as exc:
        return jsonify({'success': False, 'error': exc.message, 'query': schema_query})

    try:
        column_names = [row['column_name'] for row in parse_tap_json(body)]
    except (KoiExplorerError, TypeError, KeyError):
        return jsonify({
            'success': False,
            'error': 'Failed to parse schema response',
            'rawResponse': body[:1000]
        })

    return jsonify({
        'success': True,
        'tableName': table_name,
        'query': schema_query,
        'columnCount': len(column_names),
        'columns': sorted(column_names)
    })


@proxy_bp.route('/test', methods=['GET'])
def check_catalog():
    """Check the KOI table answers, then report every column it exposes."""
    test_query = 'SELECT kepoi_name FROM cumulative WHERE ROWNUM <= 1'
    full_query = 'SELECT * FROM cumulative WHERE ROWNUM <= 1'

    try:
        body = _tap(test_query)
    except KoiExplorerError as exc:
        return jsonify({'success': False, 'error': exc.message, 'query': test_query})

    try:
        first = parse_tap_json(body)
    except UpstreamParseError as exc:
        return jsonify({
            'success': False,
            'query': test_query,
            'parseError': exc.message,
            'rawResponse': body[:2000]
        })

    if not isinstance(first, list):
        return jsonify({'success': True, 'query': test_query, 'result': first})

    try:
        rows = parse_tap_json(_tap(full_query))
    except KoiExplorerError as exc:
        return jsonify({'success': False, 'error': exc.message, 'query': full_query})

    sample: Optional[Dict[str, Any]] = None
    if isinstance(rows, list) and rows and isinstance(rows[0], dict):
        sample = rows[0]
    columns = sorted(sample.keys()) if sample else []

    return jsonify({
        'success': True,
        'query': full_query,
        'columnCount': len(columns),
        'columns': columns,
        'sampleData': sample
    })
