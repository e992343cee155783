import logging
import os

from petgroom import create_app

logger = logging.getLogger(__name__)

app = create_app(os.getenv('FLASK_ENV', 'development'))


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5021))
    logger.info("Starting pet grooming API on port %s", port)
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
