"""
Patch API — Channel Patching Blueprint
Routes: /api/projects/<project_id>/channel-map, /api/projects/<project_id>/patch/*
Dependencies: patch_engine
"""

from flask import Blueprint, jsonify, request

from core.patch import (
    FixtureSpec,
    PatchError,
    CapacityExhaustedError,
    ChannelConflictError,
    OutOfRangeError,
    ProjectNotFoundError,
    UpstreamUnavailableError,
)

patch_bp = Blueprint('patch', __name__)

_patch_engine = None

ERROR_STATUS = {
    OutOfRangeError: 400,
    ProjectNotFoundError: 404,
    ChannelConflictError: 409,
    CapacityExhaustedError: 409,
    UpstreamUnavailableError: 502,
}


def init_app(patch_engine):
    """Initialize blueprint with required dependencies."""
    global _patch_engine
    _patch_engine = patch_engine


def _error_response(error):
    if isinstance(error, PatchError):
        status = next((code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)), 500)
        body = error.to_dict()
    else:
        status = 400
        body = {'errorType': 'invalid_request', 'error': str(error)}
    body['success'] = False
    return jsonify(body), status


def _int_field(data, key, default=None):
    value = data.get(key, default)
    if value is None:
        raise ValueError(f"Missing required field: {key}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Field {key} must be an integer (got {value!r})")


@patch_bp.errorhandler(PatchError)
def handle_patch_error(error):
    return _error_response(error)


@patch_bp.errorhandler(ValueError)
def handle_value_error(error):
    return _error_response(error)


# ─────────────────────────────────────────────────────────
# Channel Map
# ─────────────────────────────────────────────────────────

@patch_bp.route('/api/projects/<project_id>/channel-map', methods=['GET'])
def get_channel_map(project_id):
    """Channel usage of a project, optionally for one universe (?universe=N)"""
    universe = request.args.get('universe')
    if universe is not None:
        universe = _int_field(request.args, 'universe')
    return jsonify(_patch_engine.channel_map_report(project_id, universe))


# ─────────────────────────────────────────────────────────
# Single Fixture Assignment
# ─────────────────────────────────────────────────────────

@patch_bp.route('/api/projects/<project_id>/patch/auto-assign', methods=['POST'])
def auto_assign(project_id):
    """Lowest free block for a fixture footprint"""
    data = request.get_json() or {}
    universe = _int_field(data, 'universe', 1)
    channel_count = _int_field(data, 'channelCount')

    start = _patch_engine.auto_assign(project_id, universe, channel_count)
    return jsonify({
        'success': True,
        'universe': universe,
        'startChannel': start,
        'endChannel': start + channel_count - 1,
        'channelCount': channel_count,
        'channelRange': f"{start}-{start + channel_count - 1}",
    })


@patch_bp.route('/api/projects/<project_id>/patch/validate', methods=['POST'])
def validate_manual(project_id):
    """Check a caller-chosen range; 409 names the conflicting fixture"""
    data = request.get_json() or {}
    universe = _int_field(data, 'universe', 1)
    start_channel = _int_field(data, 'startChannel')
    channel_count = _int_field(data, 'channelCount')

    _patch_engine.validate_manual(project_id, universe, start_channel, channel_count)
    return jsonify({
        'success': True,
        'universe': universe,
        'startChannel': start_channel,
        'channelCount': channel_count,
    })


@patch_bp.route('/api/projects/<project_id>/patch/resolve', methods=['POST'])
def resolve_start_channel(project_id):
    """Pick a start channel using auto, manual or suggest assignment"""
    data = request.get_json() or {}
    start_channel = data.get('startChannel')

    assignment = _patch_engine.resolve_start_channel(
        project_id,
        universe=_int_field(data, 'universe', 1),
        channel_count=_int_field(data, 'channelCount'),
        method=data.get('channelAssignment', 'auto'),
        start_channel=int(start_channel) if start_channel is not None else None,
        fixture_name=data.get('name', ''),
    )
    return jsonify({
        'success': True,
        'method': data.get('channelAssignment', 'auto'),
        'assignedChannel': assignment.start_channel,
        'channelRange': assignment.channel_range,
        'assignment': assignment.to_dict(),
    })


# ─────────────────────────────────────────────────────────
# Batches
# ─────────────────────────────────────────────────────────

@patch_bp.route('/api/projects/<project_id>/patch/plan', methods=['POST'])
def plan_batch(project_id):
    """Plan ranges for several fixtures in one universe (all or nothing)"""
    data = request.get_json() or {}
    specs = [FixtureSpec.from_dict(s) for s in data.get('fixtureSpecs', [])]

    plan = _patch_engine.plan_batch(
        project_id,
        specs,
        universe=_int_field(data, 'universe', 1),
        starting_channel=_int_field(data, 'startingChannel', 1),
        grouping_strategy=data.get('groupingStrategy', 'sequential'),
    )
    result = plan.to_dict()
    result['projectId'] = project_id
    result['success'] = True
    return jsonify(result)


@patch_bp.route('/api/projects/<project_id>/patch/bulk', methods=['POST'])
def plan_bulk(project_id):
    """Best-effort resolution for many fixtures, failures reported per item"""
    data = request.get_json() or {}
    fixtures = data.get('fixtures')
    if not isinstance(fixtures, list):
        raise ValueError("Field fixtures must be a list")
    return jsonify(_patch_engine.plan_bulk(project_id, fixtures))
