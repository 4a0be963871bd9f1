from plyer import notification


def notify_phone(msg="Done"):
    """Show a desktop notification once a batch has been processed."""
    try:
        notification.notify(
            title="HDR Merge",
            message=str(msg),
            app_name="HDR Merge",
            timeout=30,
        )
    except Exception as ex:
        raise RuntimeError("Failed to send system notification") from ex
