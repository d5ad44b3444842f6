"""
API routes for Wishfill.
"""
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..logger import get_logger
from ..models import ProductMetadata

logger = get_logger(__name__)

# Create blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/extract-metadata', methods=['GET'])
def extract_metadata() -> Any:
    """
    Extract product metadata from a store URL.

    Query parameters:
        url: Product page URL (required)

    Returns:
    {
        "title": "...",
        "description": "...",
        "imageUrl": "https://...",
        "price": "19,99€",
        "isTitleValid": true,
        "isImageValid": true,
        "validationMessage": ""
    }

    Extraction failures still answer 200 with empty fields and a
    validationMessage; only a missing url is a 400.
    """
    url = (request.args.get('url') or '').strip()
    if not url:
        return jsonify({'error': 'URL parameter is required'}), 400

    logger.info(f"Extracting metadata for: {url}")

    try:
        metadata = current_app.extensions['wishfill'].extract(url)
    except Exception as e:
        logger.exception(f"Error in extract-metadata endpoint: {e}")
        metadata = ProductMetadata.empty()

    return jsonify(metadata.to_dict())
