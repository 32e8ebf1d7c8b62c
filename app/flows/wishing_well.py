"""Wishing Well positivity board.

``viewPost`` is only reached by deep link from a notification and always
returns to the board.
"""
from flow_navigator import FlowDefinition

wishing_well_flow = FlowDefinition.model_validate(
    {
        "name": "wishingWell",
        "title": "Wishing Well",
        "startAt": "wishingWell:board",
        "presentation": {"additionalOpenSound": "wishingWell"},
        "nodes": {
            "wishingWell:board": {"handler": "PositivityBoard"},
            "wishingWell:viewPost": {
                "handler": "ViewPost",
                "next": [
                    {"when": "python: output.get('action') == 'list'", "goto": "wishingWell:board"},
                    {"when": "python: output.get('action') == 'respond'", "goto": "wishingWell:board"},
                    {"when": True, "goto": "wishingWell:board"},
                ],
            },
        },
    }
)
