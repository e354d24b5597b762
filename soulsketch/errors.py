class SoulSketchError(Exception):
    """Base class for errors raised by the order pipeline."""


class OrderNotFound(SoulSketchError):
    def __init__(self, order_id: str):
        super().__init__(f"order not found: {order_id}")
        self.order_id = order_id


class QuizValidationError(SoulSketchError):
    pass


class PdfRenderError(SoulSketchError):
    pass


class EmailDeliveryError(SoulSketchError):
    pass


class DeliverablesError(SoulSketchError):
    """Single wrapped failure raised by the deliverables pipeline.

    `step` names the pipeline stage that failed so the HTTP layer can tell a
    validation problem (client error) from everything else.
    """

    def __init__(self, step: str, message: str):
        super().__init__(f"Report generation failed: {message}")
        self.step = step
        self.reason = message
