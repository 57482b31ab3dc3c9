#!/usr/bin/env python3
"""
Flask trigger surface for Dhaka Dispatch.
`/` starts a batch in the background and answers 202 immediately.
"""

import logging
import os
import threading
from datetime import datetime, timezone

from dotenv import load_dotenv
from flask import Flask, jsonify

from dhakadispatch.config import Config
from dhakadispatch.logsink import install_webhook_sink
from dhakadispatch.pipeline.batch import DispatchPipeline, dispatch_batch_async

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

TRIGGER_ACCEPTED_TEXT = "News processing batch triggered successfully."

app = Flask(__name__)
app.config['DISPATCH_PIPELINE'] = None

_pipeline_lock = threading.Lock()


def get_pipeline() -> DispatchPipeline:
    """Build the pipeline from the environment on first use."""
    with _pipeline_lock:
        pipeline = app.config.get('DISPATCH_PIPELINE')
        if pipeline is None:
            config = Config.from_env()
            if config.log_sink_url:
                install_webhook_sink(config.log_sink_url, timeout=config.request_timeout)
            pipeline = DispatchPipeline.from_config(config)
            app.config['DISPATCH_PIPELINE'] = pipeline
        return pipeline


@app.route('/', methods=['GET', 'POST'])
def manual_trigger():
    logger.info("Manual trigger received")
    try:
        pipeline = get_pipeline()
    except ValueError as e:
        logger.error(f"Configuration error:\n{e}")
        return "Configuration error; batch not started.", 500
    dispatch_batch_async(pipeline)
    return TRIGGER_ACCEPTED_TEXT, 202


@app.route('/health')
def health_check():
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


if __name__ == '__main__':
    port = int(os.environ.get('WEB_PORT', os.environ.get('PORT', 8787)))
    logger.info(f"Starting Dhaka Dispatch trigger on port {port}")
    app.run(host='0.0.0.0', port=port, threaded=True)
