# app/tasks_registry.py

from app.services import contract, link, recovery

# --- Обертки: каждая задача сама открывает сессию БД ---

def run_cleanup_affiliate_links():
    # Синхронная задача, FastAPI выполнит ее в пуле потоков
    link.cleanup_affiliate_links_task()

def run_scan_contract_renewals():
    contract.scan_contract_renewals_task()

async def run_process_due_recoveries():
    await recovery.process_due_recoveries_task()


# --- Словарь-реестр всех задач, доступных для ручного запуска ---
# Ключ - имя задачи в API, 'description' - описание для админки.

TASKS = {
    "cleanup_affiliate_links": {
        "function": run_cleanup_affiliate_links,
        "description": "Переводит просроченные, заброшенные и тестовые партнерские ссылки в EXPIRED/REVOKED.",
        "is_async": False,
    },
    "scan_contract_renewals": {
        "function": run_scan_contract_renewals,
        "description": "Помечает договоры, у которых за 30 дней наступает дата продления, как ожидающие решения.",
        "is_async": False,
    },
    "process_due_recoveries": {
        "function": run_process_due_recoveries,
        "description": "Возвращает лиды расторгнутых партнеров, у которых наступило время возврата.",
        "is_async": True,
    },
}

def get_tasks_list():
    return [
        {"task_name": name, "description": data["description"]}
        for name, data in TASKS.items()
    ]
