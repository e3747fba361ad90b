#!/usr/bin/env python
"""
Launch Huey worker with optimized settings.

Usage:
    python run_worker.py
"""
import logging
import sys

# Configure logging before importing huey_config
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s:%(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    stream=sys.stdout,
)

from huey.consumer_options import ConsumerConfig
from huey.consumer import Consumer
from huey_config import huey, CONSUMER_CONFIG

if __name__ == '__main__':
    print("Starting Huey worker...", flush=True)
    print(f"  Workers: {CONSUMER_CONFIG['workers']} threads", flush=True)

    config = ConsumerConfig(**CONSUMER_CONFIG, verbose=True)
    consumer = Consumer(huey, **config.values)
    consumer.run()
