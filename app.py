"""
app.py
------
Flask entry point for the V-Bot website chatbot.

Routes
------
POST /api/chat  → Resolve a chat message   {"message": str} → {"response": str}
POST /chat      → Same handler (legacy widget mount point)
GET  /health    → Health check + AI provider / knowledge readiness

Run with:  flask --app app:create_app run   or   gunicorn "app:create_app()"

The reply field is "response" by default; CHAT_REPLY_FIELD=reply switches the
whole deployment to {"reply": str} for widgets built against that contract.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from ai_providers import build_provider
from chat_responder import ChatResponder
from config import ChatSettings
from content_index import load_content_index
from knowledge_loader import KnowledgeStore, start_background_load

load_dotenv()

# --------------------------------------------------------------------------- #
#  Logging                                                                     #
# --------------------------------------------------------------------------- #

logging.basicConfig(
    level  = os.environ.get("LOG_LEVEL", "INFO").upper(),
    format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_MISSING_MESSAGE = "Message is required"


# --------------------------------------------------------------------------- #
#  Helpers                                                                     #
# --------------------------------------------------------------------------- #

def _build_responder(settings: ChatSettings) -> ChatResponder:
    """Wire the responder from settings; starts the site scrape when needed."""
    index     = load_content_index(settings.content_index_path or None)
    provider  = build_provider(settings)
    knowledge = KnowledgeStore()

    if provider is not None and settings.grounding == "site":
        if settings.knowledge_urls:
            start_background_load(settings.knowledge_urls, knowledge)
        else:
            logger.warning("CHAT_GROUNDING=site but KNOWLEDGE_URLS is empty")

    return ChatResponder(settings, index, provider=provider, knowledge=knowledge)


def _read_message() -> Optional[str]:
    """Return the request's message, or None when it is missing/blank/not text."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if not isinstance(message, str) or not message:
        return None
    return message


# --------------------------------------------------------------------------- #
#  App factory                                                                 #
# --------------------------------------------------------------------------- #

def create_app(
    settings:  Optional[ChatSettings]  = None,
    responder: Optional[ChatResponder] = None,
) -> Flask:
    settings  = settings or ChatSettings.from_env()
    logging.getLogger().setLevel(settings.log_level)
    responder = responder or _build_responder(settings)
    reply_field = settings.reply_field

    app = Flask(__name__)
    app.config["CHAT_RESPONDER"] = responder

    def chat():
        message = _read_message()
        if message is None:
            return jsonify({"error": _MISSING_MESSAGE}), 400

        reply = responder.respond(message)
        return jsonify({reply_field: reply.text})

    app.add_url_rule("/api/chat", "api_chat", chat, methods=["POST"])
    app.add_url_rule("/chat", "chat", chat, methods=["POST"])

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status":           "ok",
            "service":          "vbot-chat",
            "ai_provider":      responder.provider_name,
            "knowledge_loaded": responder.knowledge.is_loaded,
        })

    # ----------------------------------------------------------------------- #
    #  Error handlers                                                          #
    # ----------------------------------------------------------------------- #

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found."}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed."}), 405

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error."}), 500

    return app


# --------------------------------------------------------------------------- #
#  Entry point                                                                 #
# --------------------------------------------------------------------------- #

if __name__ == "__main__":
    port  = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "false").lower() == "true"
    create_app().run(host="0.0.0.0", port=port, debug=debug)
