# scripts/run_tasks_manually.py
import asyncio
import logging
import sys
import os

# Хак для корректной работы импортов при запуске из корня проекта
sys.path.append(os.getcwd())

from app.tasks_registry import TASKS


async def main(names: list[str]):
    """
    Поочередно запускает фоновые задачи из реестра.
    Без аргументов запускаются все задачи.
    """
    unknown = [name for name in names if name not in TASKS]
    if unknown:
        print(f"Unknown tasks: {', '.join(unknown)}. Available: {', '.join(TASKS)}")
        return

    selected = names or list(TASKS)
    print("--- Manual Task Runner ---")

    for index, name in enumerate(selected, start=1):
        task = TASKS[name]
        print(f"\n[{index}/{len(selected)}] Running: {name}...")
        if task["is_async"]:
            await task["function"]()
        else:
            # Синхронные задачи уходят в поток, чтобы не блокировать event loop
            await asyncio.to_thread(task["function"])
        print("Done.")

    print("\n--- All tasks completed! ---")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, stream=sys.stdout, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        asyncio.run(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nScript interrupted by user.")
