from decimal import Decimal
from typing import Any, Dict, List, Optional
from flask import jsonify
from sqlalchemy.orm import class_mapper

def model_to_dict(model: Any, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Convert a SQLAlchemy model instance to a dictionary.
    """
    if not model:
        return None

    exclude = set(exclude or [])
    data = {}
    for prop in class_mapper(model.__class__).column_attrs:
        if prop.key in exclude:
            continue
        value = getattr(model, prop.key)
        # Handle UUID, Decimal and DateTime serialization
        if hasattr(value, 'isoformat'):  # DateTime / Date
            data[prop.key] = value.isoformat()
        elif hasattr(value, '__class__') and value.__class__.__name__ == 'UUID':
            data[prop.key] = str(value)
        elif isinstance(value, Decimal):
            data[prop.key] = float(value)
        else:
            data[prop.key] = value
    return data

def models_to_list(models: List[Any], exclude: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """
    Convert a list of SQLAlchemy model instances to a list of dictionaries.
    """
    return [model_to_dict(m, exclude=exclude) for m in models]

def user_to_dict(user) -> Dict[str, Any]:
    return model_to_dict(user, exclude=['password_hash'])

def api_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    error: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None
):
    """
    Standard API response format.
    """
    response = {
        "success": status_code >= 200 and status_code < 300,
        "message": message,
        "data": data
    }

    if error:
        response["error"] = error

    if meta:
        response["meta"] = meta

    return jsonify(response), status_code

def service_error_response(e):
    """Render a ServiceError with its own status code."""
    return api_response(
        data=e.details or None,
        status_code=e.status_code,
        message=e.message,
        error=e.error
    )
