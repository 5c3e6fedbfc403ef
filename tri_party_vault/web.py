#!/usr/bin/env python3
"""
JSON API for tri-party vaults
"""

import logging
from typing import Dict, Optional

from flask import Flask, jsonify, request

from .config import WebSettings
from .errors import AuthorizationError, StateError, ValidationError, VaultError
from .identity import normalize_identity
from .ledger import InMemoryTokenLedger
from .oracle import PriceFeedAccount
from .vault import VaultProgram

logger = logging.getLogger("tri_party_vault.web")

STATUS_BY_KIND = {
    AuthorizationError: 403,
    StateError: 409,
}


def _status_for(error: VaultError) -> int:
    if error.code == "VaultNotFound":
        return 404
    for kind, status in STATUS_BY_KIND.items():
        if isinstance(error, kind):
            return status
    return 422


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _vault_info(program: VaultProgram, vault: str) -> dict:
    record = program.get(vault)
    info = record.to_dict()
    info['vault'] = vault
    info['authority'] = program.vault_authority(vault).address
    info['holding_balance'] = program.ledger.balance(program.holding_account(vault, record))
    return info


def create_app(program: Optional[VaultProgram] = None,
               feeds: Optional[Dict[str, PriceFeedAccount]] = None) -> Flask:
    """Build the API around a program (an in-memory one by default)"""
    app = Flask(__name__)
    program = program or VaultProgram(InMemoryTokenLedger())
    feeds = feeds if feeds is not None else {}
    app.config['VAULT_PROGRAM'] = program
    app.config['PRICE_FEEDS'] = feeds

    @app.errorhandler(VaultError)
    def handle_vault_error(e: VaultError):
        body = e.to_dict()
        body['success'] = False
        return jsonify(body), _status_for(e)

    @app.errorhandler(KeyError)
    def handle_missing_field(e: KeyError):
        return jsonify({'success': False, 'error': 'MissingField', 'message': f"Missing field {e.args[0]}"}), 400

    @app.errorhandler(ValueError)
    def handle_bad_value(e: ValueError):
        return jsonify({'success': False, 'error': 'BadRequest', 'message': str(e)}), 400

    @app.route('/api/assets', methods=['POST'])
    def register_asset():
        """Register an asset on the in-memory ledger"""
        data = _payload()
        if not isinstance(program.ledger, InMemoryTokenLedger):
            return jsonify({'success': False, 'error': 'Unsupported'}), 400
        asset = program.ledger.register_asset(data['asset'], int(data['decimals']))
        return jsonify({'success': True, 'asset': asset})

    @app.route('/api/mint', methods=['POST'])
    def mint():
        """Credit a participant's holding account on the in-memory ledger"""
        data = _payload()
        if not isinstance(program.ledger, InMemoryTokenLedger):
            return jsonify({'success': False, 'error': 'Unsupported'}), 400
        owner = normalize_identity(data['owner'])
        asset = normalize_identity(data['asset'])
        program.ledger.mint(owner, asset, int(data['amount']))
        return jsonify({'success': True, 'balance': program.ledger.balance_of(owner, asset)})

    @app.route('/api/feeds', methods=['POST'])
    def publish_feed():
        """Publish the latest price for a feed identity"""
        data = _payload()
        feed = PriceFeedAccount.publish(
            data['identity'],
            int(data['price']),
            int(data.get('confidence', 0)),
            int(data['exponent']),
            int(data['publish_time'])
        )
        feeds[feed.identity] = feed
        return jsonify({'success': True, 'feed': feed.identity})

    @app.route('/api/vaults', methods=['POST'])
    def create_vault():
        data = _payload()
        vault = program.initialize(data['custodian'], data['borrower'], data['lender'], data['asset'])
        return jsonify({'success': True, 'vault': vault, 'state': _vault_info(program, vault)})

    @app.route('/api/vaults/<vault>')
    def get_vault(vault):
        return jsonify(_vault_info(program, vault))

    @app.route('/api/vaults/<vault>/deposit', methods=['POST'])
    def deposit(vault):
        data = _payload()
        total = program.deposit(vault, data['amount'], data['depositor'])
        return jsonify({'success': True, 'amount_locked': total})

    @app.route('/api/vaults/<vault>/approve', methods=['POST'])
    def approve(vault):
        data = _payload()
        bits = program.approve(vault, data['role'], data['signer'])
        return jsonify({'success': True, 'approvals': bits})

    @app.route('/api/vaults/<vault>/revoke', methods=['POST'])
    def revoke(vault):
        data = _payload()
        bits = program.revoke(vault, data['role'], data['signer'])
        return jsonify({'success': True, 'approvals': bits})

    @app.route('/api/vaults/<vault>/release', methods=['POST'])
    def release(vault):
        data = _payload()
        feed = None
        if data.get('price_feed'):
            feed = feeds.get(normalize_identity(data['price_feed']))
        remaining = program.release(vault, data['amount'], data['recipient'], feed)
        return jsonify({'success': True, 'amount_locked': remaining})

    @app.route('/api/vaults/<vault>/pause', methods=['POST'])
    def pause(vault):
        program.pause(vault, _payload()['signer'])
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/unpause', methods=['POST'])
    def unpause(vault):
        program.unpause(vault, _payload()['signer'])
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/reset_approvals', methods=['POST'])
    def reset_approvals(vault):
        program.reset_approvals(vault, _payload()['signer'])
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/rotate_role', methods=['POST'])
    def rotate_role(vault):
        data = _payload()
        program.rotate_role(vault, data['role'], data['new_identity'])
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/price_feed', methods=['POST'])
    def set_price_feed(vault):
        data = _payload()
        enabled = data.get('enabled', True)
        if not isinstance(enabled, bool):
            raise ValidationError("InvalidRiskParams", f"enabled must be a JSON boolean, got {enabled!r}")
        program.set_price_feed(vault, data['signer'], data['feed'], enabled)
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/risk_limits', methods=['POST'])
    def set_risk_limits(vault):
        data = _payload()
        program.set_risk_limits(
            vault,
            data['signer'],
            data['max_ltv_bps'],
            data['max_single_usd'],
            data['daily_cap_usd'],
            data['max_staleness']
        )
        return jsonify({'success': True})

    @app.route('/api/vaults/<vault>/close', methods=['POST'])
    def close_vault(vault):
        program.close(vault, _payload()['signer'])
        return jsonify({'success': True})

    @app.route('/api/events')
    def list_events():
        return jsonify({'events': [e.to_dict() for e in program.events]})

    return app


def main():
    settings = WebSettings.from_env()
    logging.basicConfig(level=settings.log_level)
    app = create_app()
    logger.info(f"Serving vault API on {settings.host}:{settings.port}")
    app.run(host=settings.host, port=settings.port, debug=False)


if __name__ == "__main__":
    main()
