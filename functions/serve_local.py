#!/usr/bin/env python3
"""Local development server for the Blueprint Estimator functions.

This server mimics the Firebase Functions emulator endpoints.

Usage:
    cd functions
    source venv/bin/activate
    python serve_local.py

This will start a Flask server that handles:
- POST /<project>/us-central1/process_blueprint -> process_blueprint function
- POST /<project>/us-central1/review_line_items -> review_line_items function
- GET  /<project>/us-central1/health -> health function
"""

import os

# Set environment for local development
os.environ.setdefault('FUNCTIONS_EMULATOR', 'true')
os.environ.setdefault('USE_FIREBASE_EMULATORS', 'true')
os.environ.setdefault('GCLOUD_PROJECT', 'blueprint-estimator-dev')

from flask import Flask, request, jsonify
from flask_cors import CORS

# Import the main module after setting env vars
from main import process_blueprint, review_line_items, health

PROJECT = os.environ['GCLOUD_PROJECT']
PREFIX = f'/{PROJECT}/us-central1'

app = Flask(__name__)
CORS(app)


class MockRequest:
    """Mock Firebase request object to wrap Flask request."""

    def __init__(self, flask_request):
        self._request = flask_request
        self._json_data = None
        self.method = flask_request.method
        self.headers = dict(flask_request.headers)

    def get_json(self, force=False):
        if self._json_data is None:
            self._json_data = self._request.get_json(force=force) or {}
        return self._json_data


def wrap_firebase_function(firebase_fn):
    """Wrap a Firebase function to work with Flask."""
    def wrapper():
        mock_req = MockRequest(request)
        response = firebase_fn(mock_req)
        return response.get_data(), response.status_code, dict(response.headers)
    return wrapper


@app.route(f'{PREFIX}/process_blueprint', methods=['POST', 'OPTIONS'])
def handle_process_blueprint():
    return wrap_firebase_function(process_blueprint)()

@app.route(f'{PREFIX}/review_line_items', methods=['POST', 'OPTIONS'])
def handle_review_line_items():
    return wrap_firebase_function(review_line_items)()

@app.route(f'{PREFIX}/health', methods=['GET', 'OPTIONS'])
def handle_health():
    return wrap_firebase_function(health)()


# Health check for the dev server itself
@app.route('/health', methods=['GET'])
def local_health():
    return jsonify({'status': 'ok', 'service': 'blueprint-estimator-local'})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    print(f"""
╔════════════════════════════════════════════════════════════════╗
║  Blueprint Estimator Functions - Local Development Server      ║
╠════════════════════════════════════════════════════════════════╣
║                                                                ║
║  Server running on: http://127.0.0.1:{port}
║                                                                ║
║  Endpoints:                                                    ║
║  • POST {PREFIX}/process_blueprint
║  • POST {PREFIX}/review_line_items
║  • GET  {PREFIX}/health
║                                                                ║
╚════════════════════════════════════════════════════════════════╝
""")
    app.run(host='127.0.0.1', port=port, debug=True, threaded=True)
