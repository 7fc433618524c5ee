from __future__ import annotations
import logging

from flask import Flask, request, jsonify, Response

from snippet_bridge.api.collaborator import SchemaTarget
from snippet_bridge.api.orchestrator import REGISTRY, start_invocation
from snippet_bridge.api.pipeline import ParseMiss, build_request
from snippet_bridge.config.env import configure_logging, get_bridge_config, get_server_config
from snippet_bridge.markup.kinds import KINDS, get_profile

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _read_input():
    """(source, kind, error_response) from the JSON body."""
    payload = request.get_json(force=True, silent=True) or {}
    source = str(payload.get('source') or '')
    kind = str(payload.get('kind') or '')
    if not source.strip():
        return payload, None, (jsonify({'error': 'source is required'}), 400)
    try:
        get_profile(kind)
    except ValueError as e:
        return payload, None, (jsonify({'error': str(e)}), 400)
    return payload, kind, None


@app.get('/kinds')
def list_kinds():
    return jsonify({'kinds': [
        {'kind': p.kind, 'tag_name': p.tag_name, 'example': p.example, 'nested': p.nested}
        for p in KINDS.values()
    ]})


@app.post('/parse')
def post_parse():
    payload, kind, err = _read_input()
    if err is not None:
        return err
    outcome = build_request(str(payload['source']), kind, kind_defaults=get_bridge_config().kind_defaults)
    if isinstance(outcome, ParseMiss):
        body = outcome.to_dict()
        body['error'] = 'parse_miss'
        return jsonify(body), 422
    return jsonify({
        'request': outcome.to_message(),
        'descriptor': outcome.descriptor.to_dict() if outcome.descriptor else None,
    })


@app.post('/conversions')
def post_conversions():
    payload, kind, err = _read_input()
    if err is not None:
        return err
    try:
        target = SchemaTarget.from_dict(payload.get('target') or {})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    iid = start_invocation(str(payload['source']), kind, target)
    return jsonify({'conversion_id': iid, 'status': 'queued'})


@app.get('/conversions/<iid>')
def get_conversion(iid: str):
    inv = REGISTRY.get(iid)
    if not inv:
        return jsonify({'error': 'not_found'}), 404
    return jsonify(inv.to_dict())


@app.get('/conversions/<iid>/report')
def get_report(iid: str):
    inv = REGISTRY.get(iid)
    if not inv:
        return jsonify({'error': 'not_found'}), 404
    return Response(inv.report(), mimetype='text/markdown')


if __name__ == '__main__':
    configure_logging()
    cfg = get_server_config()
    app.run(host=cfg.host, port=cfg.port)
