import math

from flask import Flask, request, jsonify
from flask_cors import CORS

import compiler
from intermediate import format_operand
from optimizer import MAX_PASSES
from vm import MAX_STEPS

app = Flask(__name__)
app.config.from_mapping(
    VM_MAX_STEPS=MAX_STEPS,
    OPTIMIZER_MAX_PASSES=MAX_PASSES,
    OPTIMIZE=True,
)
app.config.from_prefixed_env("JSQUAD")
CORS(app)  # allow cross-origin requests


def operand_to_json(operand):
    """JSON-safe operand: non-finite numbers have no JSON spelling."""
    if isinstance(operand, float) and not math.isfinite(operand):
        return format_operand(operand)
    return operand


def tac_to_rows(tac):
    rows = [t.as_dict() for t in tac]
    for row in rows:
        row["arg1"] = operand_to_json(row["arg1"])
        row["arg2"] = operand_to_json(row["arg2"])
    return rows


def empty_response(errors):
    return {
        "ast": {},
        "errors": errors,
        "warnings": [],
        "symbol_table": [],
        "statistics": {},
        "report": "",
        "tac": [],
        "tac_text": [],
        "optimized_tac": [],
        "optimized_tac_text": [],
        "generator_warnings": [],
        "output": [],
    }


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@app.route("/compile", methods=["POST"])
def compile_code():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or ("code" not in data and "ast" not in data):
        return jsonify(empty_response(["Request body must be JSON with a 'code' or 'ast' field"])), 400
    try:
        if data.get("ast") is not None:
            tree = data["ast"]
        else:
            tree = compiler.parse_source(data.get("code") or "")
    except compiler.ParseError as e:
        app.logger.info("syntax error: %s", e)
        return jsonify(empty_response([e.as_dict()])), 400

    try:
        result = compiler.compile_tree(
            tree,
            inputs=data.get("inputs") or [],
            optimize=app.config["OPTIMIZE"],
            max_steps=int(app.config["VM_MAX_STEPS"]),
            max_passes=int(app.config["OPTIMIZER_MAX_PASSES"]),
        )
        response = {
            "ast": result['ast'],
            "errors": result['errors'],
            "warnings": result['warnings'],
            "symbol_table": result['symbol_table'],
            "statistics": result['statistics'],
            "report": result['report'],
            "tac": tac_to_rows(result['tac']),
            "tac_text": [repr(t) for t in result['tac']],
            "optimized_tac": tac_to_rows(result['optimized_tac']),
            "optimized_tac_text": [repr(t) for t in result['optimized_tac']],
            "generator_warnings": result['generator_warnings'],
            "output": result['output'],
        }
        return jsonify(response)
    except Exception as e:
        app.logger.exception("compile request failed")
        return jsonify(empty_response([f"Unexpected error: {str(e)}"])), 500


if __name__ == "__main__":
    app.run(debug=True)
