"""Workbook: a grid of activities, each opened as a stacked layer."""
from flow_navigator import FlowDefinition

workbook_flow = FlowDefinition.model_validate(
    {
        "name": "workbook",
        "title": "Workbook",
        "startAt": "workbook:landing",
        "nodes": {
            "workbook:landing": {
                "handler": "WorkbookLanding",
                "input": {"bookshelfId": None},
                "next": [
                    {"when": "python: output.get('action') == 'selectActivity'", "goto": "workbook:activity"},
                ],
            },
            "workbook:activity": {
                "handler": "WorkbookActivity",
                "depth": 1,
                "input": {"activityId": None, "bookshelfId": None},
                "next": [
                    {"when": "python: output.get('action') == 'back'", "goto": "workbook:landing"},
                    {"when": "python: output.get('action') == 'complete'", "goto": "workbook:landing"},
                ],
            },
        },
    }
)
