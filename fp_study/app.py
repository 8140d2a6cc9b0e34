"""
FP Study - Flask JSON API
Exposes the selection, progress and statistics engines to a front end.
"""

import os
import traceback
from dataclasses import asdict
from typing import Any

import structlog
from flask import Flask, jsonify, request

from . import corpus, db, progress, settings, statistics
from .errors import StorageUnavailable, ValidationError
from .selection import StudyStrategy, select_questions
from .session import StudySession

logger = structlog.get_logger(__name__)

DEBUG = os.environ.get("DEBUG", "0") == "1"

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')


@app.before_request
def initialize_app() -> None:
    """Initialize the database if needed."""
    if not app.config.get('DATABASE_INITIALIZED'):
        if not db.is_db_initialized():
            db.init_db()
            logger.info("database_initialized")
        app.config['DATABASE_INITIALIZED'] = True


@app.errorhandler(StorageUnavailable)
def handle_storage_unavailable(e: StorageUnavailable) -> Any:
    if DEBUG:
        traceback.print_exc()
    return jsonify({'status': 'error', 'message': f'Storage unavailable: {e}'}), 503


@app.errorhandler(ValidationError)
def handle_validation_error(e: ValidationError) -> Any:
    return jsonify({'status': 'error', 'message': str(e), 'errors': e.errors}), 400


@app.errorhandler(ValueError)
def handle_value_error(e: ValueError) -> Any:
    return jsonify({'status': 'error', 'message': str(e)}), 400


@app.route('/api/questions/select')
def api_select_questions() -> Any:
    """Pick a batch of questions for one study strategy."""
    strategy = request.args.get('strategy', StudyStrategy.RANDOM.value)
    questions = select_questions(
        strategy,
        request.args.get('count', type=int),
        grade=request.args.get('grade'),
        category=request.args.get('category'),
        year=request.args.get('year', type=int),
        exclude_ids=request.args.getlist('exclude'),
    )
    if not questions:
        return jsonify({'status': 'no_questions', 'questions': [],
                        'total_in_corpus': corpus.question_count()})
    return jsonify({'status': 'success', 'questions': [db.as_dict(q) for q in questions]})


@app.route('/api/answers', methods=['POST'])
def api_submit_answers() -> Any:
    """Record a finished session's answers and roll them into today's stats.

    Body: {"mode": "random", "answers": [{"question_id": ..., "answer": 1, "time_spent": 12}]}
    """
    data = request.get_json(force=True) or {}
    items = data.get('answers') or []
    if not isinstance(items, list):
        raise ValueError('answers must be a list')
    for i, item in enumerate(items):
        if not isinstance(item, dict) or not isinstance(item.get('question_id'), str):
            raise ValueError(f'answers[{i}] needs a question_id string')
        if isinstance(item.get('answer'), bool) or not isinstance(item.get('answer'), int):
            raise ValueError(f'answers[{i}] needs an integer answer')
    ids = [item['question_id'] for item in items]
    by_id = {q.id: q for q in db.query(db.Question, "id", lambda c: c.in_(ids))}
    missing = sorted(set(ids) - set(by_id))
    if missing:
        return jsonify({'status': 'error', 'message': f'Unknown questions: {", ".join(missing)}'}), 404

    session = StudySession.start(data.get('mode', StudyStrategy.RANDOM.value), [by_id[qid] for qid in ids])
    results = []
    for item in items:
        answer = session.answer(int(item['answer']), time_spent=item.get('time_spent'))
        level = progress.get_progress(answer.question_id)
        results.append({
            'question_id': answer.question_id,
            'is_correct': answer.is_correct,
            'mastery_level': level.mastery_level if level else 0,
        })
        session.next_question()
    daily = session.finish()
    return jsonify({'status': 'success', 'results': results, 'today': db.as_dict(daily)})


@app.route('/api/sessions/finish', methods=['POST'])
def api_finish_session() -> Any:
    """Roll a session tracked by the front end into today's stats."""
    data = request.get_json(force=True) or {}
    try:
        solved = int(data.get('questions_solved', 0))
        correct = int(data.get('correct_answers', 0))
        minutes = int(data.get('study_time_minutes', 0))
    except (TypeError, ValueError):
        raise ValueError('questions_solved, correct_answers and study_time_minutes must be integers')
    if min(solved, correct, minutes) < 0 or correct > solved:
        raise ValueError('Counts must be non-negative and correct_answers <= questions_solved')
    daily = statistics.record_session(solved, correct, minutes)
    return jsonify({'status': 'success', 'today': db.as_dict(daily)})


@app.route('/api/progress/<question_id>/bookmark', methods=['POST'])
def api_toggle_bookmark(question_id: str) -> Any:
    return jsonify({'question_id': question_id, 'is_bookmarked': progress.toggle_bookmark(question_id)})


@app.route('/api/progress/<question_id>/notes', methods=['PUT'])
def api_set_notes(question_id: str) -> Any:
    data = request.get_json(force=True) or {}
    record = progress.set_notes(question_id, data.get('notes', ''))
    return jsonify(db.as_dict(record))


@app.route('/api/progress/distribution')
def api_mastery_distribution() -> Any:
    dist = progress.mastery_distribution()
    return jsonify({**asdict(dist), 'total': dist.total})


@app.route('/api/stats/overall')
def api_overall_stats() -> Any:
    return jsonify(asdict(statistics.overall_stats()))


@app.route('/api/stats/categories')
def api_category_stats() -> Any:
    return jsonify([asdict(c) for c in statistics.category_stats()])


@app.route('/api/stats/today')
def api_today_stats() -> Any:
    daily = statistics.get_today_stats()
    return jsonify({
        'answers': statistics.today_answer_summary(),
        'daily_stats': db.as_dict(daily) if daily else None,
        'days_until_exam': settings.days_until_exam(),
    })


@app.route('/api/import', methods=['POST'])
def api_import() -> Any:
    """Import a JSON array of questions posted as the request body."""
    records = request.get_json(force=True)
    if isinstance(records, dict):
        records = records.get('questions')
    if not isinstance(records, list):
        raise ValidationError("Request body must be a JSON array of questions")
    count = corpus.import_questions(records)
    return jsonify({'status': 'success', 'imported': count, 'total': corpus.question_count()})


@app.route('/api/reset', methods=['POST'])
def api_reset() -> Any:
    data = request.get_json(silent=True) or {}
    full = bool(data.get('full', False))
    corpus.reset_history(full=full)
    return jsonify({'status': 'success', 'full': full})


@app.route('/api/settings', methods=['GET', 'PUT'])
def api_settings() -> Any:
    if request.method == 'PUT':
        settings.save_settings(**(request.get_json(force=True) or {}))
    return jsonify(db.as_dict(settings.load_settings()))


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description='FP study JSON API')
    parser.add_argument('--host', default='127.0.0.1', help='Host IP to bind to (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to (default: 5000)')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    args = parser.parse_args()

    db.init_db()
    app.run(debug=args.debug or DEBUG, host=args.host, port=args.port)


if __name__ == '__main__':
    main()
