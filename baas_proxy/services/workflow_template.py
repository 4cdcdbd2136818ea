"""
Workflow Template Service
Personalizes the bundled n8n workflow document for a device
"""

import json
import os
from functools import lru_cache
from typing import Any, Dict

DEVICE_ID_PLACEHOLDER = "__DEVICE_ID__"

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "templates")
WELCOME_WORKFLOW_TEMPLATE = "welcome_workflow.json"


@lru_cache
def load_template(name: str = WELCOME_WORKFLOW_TEMPLATE) -> str:
    """Read a template file as raw JSON text"""
    with open(os.path.join(TEMPLATES_DIR, name), "r", encoding="utf-8") as f:
        return f.read()


def _substitute(node: Any, device_id: str) -> Any:
    if isinstance(node, str):
        return node.replace(DEVICE_ID_PLACEHOLDER, device_id)
    if isinstance(node, list):
        return [_substitute(item, device_id) for item in node]
    if isinstance(node, dict):
        return {
            _substitute(key, device_id): _substitute(value, device_id)
            for key, value in node.items()
        }
    return node


def personalize_workflow(device_id: str, name: str = WELCOME_WORKFLOW_TEMPLATE) -> Dict[str, Any]:
    """
    Build the workflow document for a device.

    The template is parsed first and the placeholder replaced inside every
    string (keys included), so the device id can never break the JSON structure.
    """
    document = json.loads(load_template(name))
    return _substitute(document, device_id)
