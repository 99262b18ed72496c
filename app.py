import logging

from dotenv import load_dotenv

from flask import Flask, request, jsonify
from openai import OpenAI

load_dotenv()

from doc_interviewer.db import get_default_adapter
from doc_interviewer.errors import ConversationNotFound, IncompleteAnswerSet
from doc_interviewer.gate import Answer
from doc_interviewer.gate.questions import answers_from_mapping
from doc_interviewer.services import ConversationService

app = Flask(__name__)
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
db_adapter = get_default_adapter()
db_adapter.create_tables()
db_adapter.migrate_tables()


@app.route("/")
def hello_world() -> str:
    logger.debug("Health check request received.")
    return "Hello, World!"


@app.route("/conversations", methods=["POST"])
def start_conversation() -> tuple:
    """
    Start a documentation conversation and analyze the materials in the background.

    JSON body: {
        "materials": "/path/to/service" or "https://github.com/owner/repo.git",
        "kind": "prd" | "tsd",
        "service_name": "billing",
        "profile": "generic" | "python" | "go",   (optional, detected when omitted)
        "companion_document": "# PRD ..."          (optional, read-only context)
    }
    """
    body = request.get_json(silent=True) or {}
    materials = str(body.get("materials") or "").strip()
    kind = str(body.get("kind") or "").strip()
    service_name = str(body.get("service_name") or "").strip()
    if not materials or not kind or not service_name:
        logger.info("start conversation missing fields.")
        return jsonify({"error": "'materials', 'kind' and 'service_name' are required"}), 400

    try:
        logger.info("Starting %s conversation for %s from %s", kind, service_name, materials)
        status = ConversationService.start_conversation(
            materials=materials,
            kind=kind,
            service_name=service_name,
            profile=body.get("profile") or None,
            companion_document=body.get("companion_document") or None,
        )
        return jsonify(status), 202
    except ValueError as e:
        return _value_error_response(e, "start conversation")
    except Exception as e:
        logger.exception("start conversation failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations", methods=["GET"])
def list_conversations() -> tuple:
    service_name = request.args.get("service_name") or None
    try:
        conversations = ConversationService.list_conversations(service_name=service_name)
        return jsonify({"total": len(conversations), "conversations": conversations}), 200
    except Exception as e:
        logger.exception("list conversations failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>", methods=["GET"])
def get_conversation(conversation_id: str) -> tuple:
    try:
        return jsonify(ConversationService.get_conversation(conversation_id)), 200
    except ValueError as e:
        return _value_error_response(e, "get conversation")
    except Exception as e:
        logger.exception("get conversation failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/analyze", methods=["POST"])
def retry_analysis(conversation_id: str) -> tuple:
    """Re-run analysis for a conversation whose analysis failed or went stale."""
    try:
        logger.info("Retry analysis requested: %s", conversation_id)
        return jsonify(ConversationService.retry_analysis(conversation_id)), 202
    except ValueError as e:
        return _value_error_response(e, "retry analysis")
    except Exception as e:
        logger.exception("retry analysis failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/questions", methods=["GET"])
def get_questions(conversation_id: str) -> tuple:
    """Pending clarifying questions, grouped by category, plus a markdown prompt."""
    try:
        return jsonify(ConversationService.get_questions(conversation_id)), 200
    except ValueError as e:
        return _value_error_response(e, "get questions")
    except Exception as e:
        logger.exception("get questions failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/answers", methods=["POST"])
def submit_answers(conversation_id: str) -> tuple:
    """
    Answer the clarifying questions and generate the document.

    JSON body: { "answers": {"1": "B", "2": "free text"} } or { "text": "1: B\\n2: free text" }.
    Responds 409 with the missing ordinals when some questions are left open.
    """
    body = request.get_json(silent=True) or {}
    try:
        if isinstance(body.get("answers"), dict):
            answers: list[Answer] = answers_from_mapping(body["answers"])
            status = ConversationService.submit_answers(conversation_id, answers)
        elif isinstance(body.get("text"), str) and body["text"].strip():
            status = ConversationService.submit_answer_text(conversation_id, body["text"])
        else:
            return jsonify({"error": "Provide 'answers' (object) or 'text' (string)"}), 400
        return jsonify(status), 200
    except IncompleteAnswerSet as e:
        logger.info("Incomplete answers for %s: missing=%s", conversation_id, e.missing)
        pending = ConversationService.get_questions(conversation_id)
        return jsonify({
            "error": str(e),
            "missing": e.missing,
            "questions": pending["questions"],
            "prompt": pending["prompt"],
        }), 409
    except ValueError as e:
        return _value_error_response(e, "submit answers")
    except Exception as e:
        logger.exception("submit answers failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/skip", methods=["POST"])
def skip_questions(conversation_id: str) -> tuple:
    """Accept the stated assumptions for every open question and generate."""
    try:
        logger.info("Skip directive for %s", conversation_id)
        return jsonify(ConversationService.skip(conversation_id)), 200
    except ValueError as e:
        return _value_error_response(e, "skip")
    except Exception as e:
        logger.exception("skip failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/document", methods=["GET"])
def get_document(conversation_id: str) -> tuple:
    try:
        return jsonify(ConversationService.get_document(conversation_id)), 200
    except ValueError as e:
        return _value_error_response(e, "get document")
    except Exception as e:
        logger.exception("get document failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/export", methods=["POST"])
def export_document(conversation_id: str) -> tuple:
    """
    Write PRD-<service>.md / TSD-<service>.md under DOCUMENTS_DIR.

    JSON body: { "output_dir": "team-a" } (optional, must stay inside DOCUMENTS_DIR)
    """
    body = request.get_json(silent=True) or {}
    try:
        result = ConversationService.export_document(
            conversation_id,
            str(body["output_dir"]) if body.get("output_dir") else None,
        )
        return jsonify(result), 200
    except ValueError as e:
        return _value_error_response(e, "export document")
    except Exception as e:
        logger.exception("export document failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/conversations/<string:conversation_id>/revisions", methods=["POST"])
def request_revision(conversation_id: str) -> tuple:
    """
    Start a new conversation that re-analyzes only the named sections.

    JSON body: { "sections": ["Business Rules"], "notes": "optional reviewer notes" }
    """
    body = request.get_json(silent=True) or {}
    sections = body.get("sections")
    if isinstance(sections, str):
        sections = [sections]
    if not isinstance(sections, list) or not sections:
        return jsonify({"error": "'sections' must be a non-empty list"}), 400
    try:
        status = ConversationService.request_revision(
            conversation_id,
            [str(s) for s in sections],
            str(body.get("notes") or ""),
        )
        return jsonify(status), 202
    except ValueError as e:
        return _value_error_response(e, "request revision")
    except Exception as e:
        logger.exception("request revision failed.")
        return jsonify({"error": str(e)}), 500


@app.route("/openai/health", methods=["GET"])
def openai_health() -> tuple:
    """Validate OpenAI SDK configuration."""
    try:
        client = OpenAI()
        models = client.models.list()
        model_count = len(list(models))
        logger.info("OpenAI health ok. Models=%d", model_count)
        return jsonify({"status": "ok", "models": model_count}), 200
    except Exception as e:
        logger.exception("OpenAI health failed.")
        return jsonify({"status": "error", "error": str(e)}), 500


def _value_error_response(error: ValueError, action: str) -> tuple:
    code = 404 if isinstance(error, ConversationNotFound) else 400
    logger.info("%s rejected: %s", action, error)
    return jsonify({"error": str(error), "type": type(error).__name__}), code


if __name__ == "__main__":
    app.run(debug=True)
