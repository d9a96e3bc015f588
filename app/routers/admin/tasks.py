# app/routers/admin/tasks.py

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from app.schemas.admin import TaskInfo, TaskRunRequest
from app.tasks_registry import TASKS, get_tasks_list

logger = logging.getLogger(__name__)

# Префикс /tasks добавляется в admin/__init__.py
router = APIRouter()


@router.get("", response_model=List[TaskInfo])
def get_tasks_list_endpoint():
    """
    [АДМИН] Список фоновых задач, доступных для ручного запуска.
    """
    return get_tasks_list()


@router.post("/run", status_code=status.HTTP_202_ACCEPTED)
async def run_task_endpoint(request_data: TaskRunRequest, background_tasks: BackgroundTasks):
    """
    [АДМИН] Запускает одну задачу или все сразу (task_name = "all").
    """
    task_name = request_data.task_name

    if task_name == "all":
        for data in TASKS.values():
            background_tasks.add_task(data["function"])
        message = "All background tasks have been scheduled to run."
        logger.info("All background tasks were manually triggered.")
    elif task_name in TASKS:
        background_tasks.add_task(TASKS[task_name]["function"])
        message = f"Task '{task_name}' has been scheduled to run."
        logger.info(f"Background task '{task_name}' was manually triggered.")
    else:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task '{task_name}' not found.")

    return {"status": "accepted", "message": message}
