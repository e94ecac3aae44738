"""
MyTimetable: map an imported school calendar onto a fortnightly (A/B week)
cycle and project it back onto real dates.
"""
