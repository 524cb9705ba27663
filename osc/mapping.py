# OSC address mapping
# Modify these to match whatever address schema the receiving app listens on
# (alert overlay, lighting desk, logging tool, ...).
#
# Format: field → OSC address
OSC_ADDRESSES = {
    # Sent when the alert changes
    "alert":          "/trackhands/alert",           # int: 1 = hand near mouth, 0 = clear
    "evidence_frame": "/trackhands/evidence/frame",  # int: frame number of the latest snapshot

    # Sent after every published cycle
    "fingertips":     "/trackhands/fingertips",      # int: tips seen this cycle (0–5)
    "face":           "/trackhands/face",            # int: 1 = mouth region tracked, 0 = none
}

# Alert values are sent as ints by default. Set USE_STRING_VALUES = True to
# send the strings in VALUE_STRINGS instead.
USE_STRING_VALUES = False

VALUE_STRINGS = {
    0: "clear",
    1: "active",
}
