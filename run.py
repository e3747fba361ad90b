#!/usr/bin/env python3
"""
PhotoDater Application Entry Point.

Run the development server:
    python run.py

Run in standalone mode (Flask + Huey worker in one process):
    python run.py --standalone

For production, use a proper WSGI server like Gunicorn:
    gunicorn -w 4 -b 0.0.0.0:5000 'run:app'
"""
import os
from photodater import create_app

# Determine config from environment, default to development
config_name = os.environ.get('FLASK_ENV', 'development')

app = create_app(config_name)


def start_embedded_consumer():
    """Start Huey consumer threads inside the Flask process.

    Starts scheduler + worker threads directly, skipping signal handler
    registration which only works from the main thread. All threads are
    daemons so they end with Flask.
    """
    from huey.consumer import Consumer
    from huey_config import huey

    consumer = Consumer(huey,
        workers=2,
        worker_type='thread',
        initial_delay=0.05,
        backoff=1.2,
        max_delay=0.3,
    )

    consumer.scheduler.daemon = True
    consumer.scheduler.start()
    for _, worker_thread in consumer.worker_threads:
        worker_thread.daemon = True
        worker_thread.start()

    return consumer


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='PhotoDater development server')
    parser.add_argument('--standalone', action='store_true',
                        help='Run Flask + Huey worker in a single process')
    parser.add_argument('--port', type=int, default=5000,
                        help='Port to listen on (default: 5000)')
    parser.add_argument('--host', default='127.0.0.1',
                        help='Host to bind to (default: 127.0.0.1)')
    args = parser.parse_args()

    print(f"Starting PhotoDater in {config_name} mode...")
    print(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")
    print(f"Storage: {app.config['UPLOAD_FOLDER']}")

    if args.standalone:
        print("\n[Standalone] Starting embedded Huey consumer...")
        start_embedded_consumer()
        # Reloader would fork and duplicate the consumer threads
        app.run(host=args.host, port=args.port, debug=False, use_reloader=False)
    else:
        app.run(
            host=args.host,
            port=args.port,
            debug=app.config.get('DEBUG', False),
            threaded=True,
        )
