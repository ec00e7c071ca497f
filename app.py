import os
from flask import Flask, request, jsonify
from werkzeug.utils import secure_filename
from dotenv import load_dotenv

from pptx_archive import InvalidArchiveError, MissingPartError, NoAnalyzableInputError, NoSlidesRecoveredError
from lesson_structure import LessonStructure, analyze_pptx
from corpus_summary import aggregate, analyze_corpus, style_profile_prompt
from activity_classifier import CLASSIFIER_VERSION

load_dotenv()

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = int(os.environ.get("MAX_UPLOAD_MB", 500)) * 1024 * 1024  # 500MB max for batch uploads
app.config["CORPUS_MAX_WORKERS"] = int(os.environ.get("CORPUS_MAX_WORKERS", 2))
app.config["BRANDING_MARKERS"] = [m.strip() for m in os.environ.get("BRANDING_MARKERS", "").split(",") if m.strip()]

ALLOWED_EXTENSIONS = {"pptx"}


@app.errorhandler(413)
def request_entity_too_large(error):
    max_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return jsonify({"error": f"File(s) too large. Max total upload is {max_mb}MB."}), 413


@app.errorhandler(500)
def internal_server_error(error):
    return jsonify({"error": f"Internal server error: {error}"}), 500


def allowed_file(filename):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def wants_slides():
    value = request.values.get("slides", "").strip().lower()
    return value in ("1", "true", "yes")


@app.route("/health")
def health():
    return jsonify({"status": "ok", "classifier_version": CLASSIFIER_VERSION})


@app.route("/analyze", methods=["POST"])
def analyze():
    """Analyze one uploaded PPTX into its lesson structure."""
    if "file" not in request.files:
        return jsonify({"error": "No file uploaded"}), 400

    file = request.files["file"]
    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400

    if not allowed_file(file.filename):
        return jsonify({"error": "Only PPTX files are allowed"}), 400

    filename = secure_filename(file.filename)

    try:
        structure = analyze_pptx(file.read(), source_name=filename, branding=app.config["BRANDING_MARKERS"])
    except (InvalidArchiveError, MissingPartError, NoSlidesRecoveredError) as e:
        return jsonify({"error": str(e), "filename": filename}), 400
    except Exception as e:
        return jsonify({"error": str(e)}), 500

    warnings = []
    if structure.failed_slides:
        slide_list = ", ".join(str(i) for i in structure.failed_slides)
        warnings.append(f"Slides {slide_list} could not be read and were counted as placeholders")

    return jsonify({
        "success": True,
        "filename": filename,
        "total_slides": structure.total_slides,
        "failed_slides": list(structure.failed_slides),
        "warnings": warnings,
        "analysis": structure.to_dict(include_slides=wants_slides()),
    })


@app.route("/analyze-corpus", methods=["POST"])
def analyze_corpus_route():
    """Analyze multiple PPTX files in parallel and build the corpus style profile."""
    files = request.files.getlist("files")
    if not files or len(files) == 0:
        return jsonify({"error": "No files uploaded"}), 400

    # Read every upload up front (request.files can only be read once)
    file_infos = []
    skipped = []
    for f in files:
        if not f.filename:
            continue
        if not allowed_file(f.filename):
            skipped.append(f.filename)
            continue
        file_infos.append((secure_filename(f.filename), f.read()))

    if not file_infos:
        return jsonify({"error": "No valid PPTX files found"}), 400

    try:
        run = analyze_corpus(
            file_infos,
            max_workers=app.config["CORPUS_MAX_WORKERS"],
            branding=app.config["BRANDING_MARKERS"],
        )
    except NoAnalyzableInputError as e:
        return jsonify({"error": str(e), "results": e.results}), 422
    except Exception as e:
        return jsonify({"error": str(e)}), 500

    data = run.to_dict()
    data["warnings"] += [f"{name}: not a .pptx file, skipped" for name in skipped]
    data["success"] = True
    data["style_prompt"] = style_profile_prompt(run.summary)
    return jsonify(data)


@app.route("/aggregate", methods=["POST"])
def aggregate_saved():
    """Rebuild the corpus profile from previously saved lesson structures."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("analyses"), list):
        return jsonify({"error": "No analyses provided"}), 400

    try:
        structures = [LessonStructure.from_dict(a) for a in data["analyses"] if isinstance(a, dict)]
        summary = aggregate(structures)
    except NoAnalyzableInputError as e:
        return jsonify({"error": str(e)}), 422
    except (TypeError, ValueError, AttributeError) as e:
        return jsonify({"error": f"Malformed analysis: {e}"}), 400

    return jsonify({
        "success": True,
        "summary": summary.to_dict(),
        "style_prompt": style_profile_prompt(summary),
    })


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    debug = not (os.environ.get("RAILWAY_ENVIRONMENT") or os.environ.get("VERCEL"))
    app.run(debug=debug, host="0.0.0.0", port=port)
