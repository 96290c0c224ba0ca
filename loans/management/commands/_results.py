def write_queued(command, task):
    command.stdout.write(
        command.style.SUCCESS(f"✅ Task queued successfully! Task ID: {task.id}")
    )


def write_task_result(command, result, success_message, subject=None):
    """
    Print the outcome dict returned by a notifications task.

    ``success`` and ``completed`` print ``success_message``; ``skipped``
    prints the reason; ``failed`` and ``error`` print the task's message.
    ``subject`` prefixes the non-success lines ("Report skipped: ...").
    """
    status = result["status"]

    def label(word):
        return f"{subject} {word}" if subject else word.capitalize()

    if status in ("success", "completed"):
        command.stdout.write(command.style.SUCCESS(f"✅ {success_message}"))
    elif status == "skipped":
        command.stdout.write(
            command.style.WARNING(f'⚠️  {label("skipped")}: {result["reason"]}')
        )
    elif status == "failed":
        command.stdout.write(command.style.ERROR(f'❌ {label("failed")}: {result["message"]}'))
    else:
        command.stdout.write(command.style.ERROR(f'❌ {label("error")}: {result["message"]}'))
    return status
