from flask import Flask, request
from flask_socketio import SocketIO
import logging
import threading
from cvrp.errors import ConfigurationError
from cvrp.main import run_cvrp
from cvrp.models import Problem

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*")

_CONFIG_KEYS = (
    "population_size",
    "max_generations",
    "stagnation_threshold",
    "mutation_probability",
    "crossover_probability",
    "tabu_memory_size",
    "tabu_iterations",
    "execution_budget",
    "grace_period",
    "seed",
)


def send_optimization_event(generation, **kwargs):
    event_data = {
        'status': 'optimizing',
        'generation': generation,
        **kwargs
    }
    socketio.emit('optimization_update', event_data)


def _parse_request():
    data = request.get_json(silent=True) or {}
    payload = data.get("problem")
    if not payload:
        raise ConfigurationError("No problem provided")
    problem = Problem.from_dict(payload)
    config = data.get("config") or {}
    options = {key: config[key] for key in _CONFIG_KEYS if key in config}
    return problem, options


@socketio.on('connect')
def handle_connect():
    logging.info('Client connected')


@socketio.on('disconnect')
def handle_disconnect():
    logging.info('Client disconnected')


@app.route('/optimize', methods=['POST'])
def optimize():
    try:
        problem, options = _parse_request()
    except ConfigurationError as e:
        return {"error": str(e)}, 400

    def run_with_completion():
        try:
            result = run_cvrp(problem, epoch_callback=send_optimization_event,
                              generate_pdf=True, **options)
        except Exception as e:
            logging.error(f"Optimization failed: {e}")
            socketio.emit('optimization_update', {"status": "error", "error": str(e)})
            return
        # Send finished message when optimization completes
        socketio.emit('optimization_update', {"status": "finished", "result": result})

    optimization_thread = threading.Thread(
      target=run_with_completion,
      daemon=True
    )
    optimization_thread.start()

    return {"result": "Optimization started"}, 202


@app.route('/optimize/sync', methods=['POST'])
def optimize_sync():
    try:
        problem, options = _parse_request()
        return run_cvrp(problem, **options), 200
    except ConfigurationError as e:
        return {"error": str(e)}, 400


if __name__ == '__main__':
    logging.info("Flask-SocketIO server starting on http://localhost:5002")
    socketio.run(app, debug=True, port=5002)
