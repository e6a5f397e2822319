class TipGenerationError(RuntimeError):
    """Raised when the external text generator fails, times out, or returns nothing.

    Attributes:
        tip_type: Kind of tip that was being generated (e.g. "student_workload")
    """

    def __init__(self, tip_type: str, reason: str):
        self.tip_type = tip_type
        self.reason = reason
        super().__init__(f"tip generation failed ({tip_type}): {reason}")
