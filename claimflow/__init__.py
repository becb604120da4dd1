"""Application factory and extension initialization for ClaimFlow."""
from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_login import LoginManager
from flask_wtf import CSRFProtect

from config import config_by_name
from claimflow.services.claim_store import ClaimStore
from claimflow.services.finance_ai_service import ProposalDispatcher
from claimflow.services.organization import OrganizationRegistry
from claimflow.services.posting_service import Ledger

# Global extension instances -------------------------------------------------

login_manager = LoginManager()
csrf = CSRFProtect()
org_registry = OrganizationRegistry()
claim_store = ClaimStore()
proposal_dispatcher = ProposalDispatcher()
ledger = Ledger()


def create_app(config_name: Optional[str] = None) -> Flask:
    """Flask application factory."""
    load_dotenv()

    app = Flask(__name__)

    config_name = config_name or os.getenv("FLASK_CONFIG", "development")
    config_class = config_by_name.get(config_name.lower())
    if config_class is None:
        raise ValueError(f"Unknown Flask configuration '{config_name}'")

    app.config.from_object(config_class)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    login_manager.init_app(app)
    csrf.init_app(app)
    org_registry.init_app(app)
    claim_store.init_app(app)
    proposal_dispatcher.init_app(app, claim_store)
    ledger.init_app(app)

    # Register blueprints
    from claimflow.auth import auth_bp
    from claimflow.employee import employee_bp
    from claimflow.approver import approver_bp
    from claimflow.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(approver_bp)
    app.register_blueprint(admin_bp)

    from claimflow.models import User
    from claimflow.utils.helpers import json_response

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[User]:
        return org_registry.current.get_user(user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return json_response({"error": "Authentication required."}, status=401)

    @app.shell_context_processor
    def shell_context():
        return {"claim_store": claim_store, "org_registry": org_registry}

    return app
