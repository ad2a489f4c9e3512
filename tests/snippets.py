"""Generated-code snippets shared by the executor and workflow tests."""

import textwrap

SUNDAY_RULE = "No appointments on Sundays."
ADVANCE_RULE = "Can't book an appointment less than 48 hours in advance for new clients."
SUNDAY_AVAILABILITY_RULE = "No appointments are available on Sundays."

SUNDAY_VALIDATOR = textwrap.dedent(
    """
    def validateCustomerSchedulingParameters(year=None, month=None, day=None, hour=None, minute=None, duration_hours=None, frequency=None):
        errors = []
        if year is not None and month is not None and day is not None:
            if date(year, month, day).weekday() == 6:
                errors.append("No appointments on Sundays.")
        return errors
    """
)

NEXT_SUNDAY_EXTRACTOR = textwrap.dedent(
    """
    def getCustomerSchedulingParameters():
        today = (datetime.now(timezone.utc) + timedelta(hours=8)).date()
        sunday = today + timedelta(days=(6 - today.weekday()) % 7 or 7)
        return {
            "appointment_date": sunday.day,
            "appointment_month": sunday.month,
            "appointment_year": sunday.year,
            "appointment_time_hour": 10,
            "appointment_time_minute": 0,
            "duration_hours": None,
            "frequency": None,
        }
    """
)

ADVANCE_AND_SUNDAY_VALIDATOR = textwrap.dedent(
    """
    def validateCustomerSchedulingParameters(year=None, month=None, day=None, hour=None, minute=None, duration_hours=None, frequency=None):
        errors = []
        if None not in (year, month, day, hour, minute):
            scheduling_time = datetime(year, month, day, hour, minute)
            current_time = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=8)
            if scheduling_time < current_time + timedelta(hours=48):
                errors.append("Can't book an appointment less than 48 hours in advance for new clients.")
            if scheduling_time.weekday() == 6:
                errors.append("No appointments are available on Sundays.")
        return errors
    """
)

TUESDAY_72H_EXTRACTOR = textwrap.dedent(
    """
    def getCustomerSchedulingParameters():
        earliest = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=8 + 72)
        slot = earliest.replace(hour=10, minute=0, second=0, microsecond=0)
        if slot < earliest:
            slot += timedelta(days=1)
        while slot.weekday() != 1:
            slot += timedelta(days=1)
        return {
            "appointment_date": slot.day,
            "appointment_month": slot.month,
            "appointment_year": slot.year,
            "appointment_time_hour": slot.hour,
            "appointment_time_minute": slot.minute,
            "duration_hours": 1.0,
            "frequency": "Adhoc",
        }
    """
)

EMPTY_EXTRACTOR = textwrap.dedent(
    """
    def getCustomerSchedulingParameters():
        return {}
    """
)
