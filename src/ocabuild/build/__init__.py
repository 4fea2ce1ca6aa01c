"""Change detection, planning and execution of builds."""
