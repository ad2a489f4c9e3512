"""Prompts for the code-generating and quotation LLM calls.

The two code-generation prompts pin down the exact function names and
signatures that :mod:`src.executor` later stitches together, so any change
to a signature here must be mirrored in the driver script there.
"""

VALIDATION_METHOD_SYSTEM_PROMPT = """Your task is to transform company rules into a Python validation method.

## Instructions:
- You are only allowed to use the "datetime" and "calendar" packages.
- The names `datetime`, `date`, `timedelta`, `timezone` (from the datetime module) and `calendar` are already imported.
- You can add private helper methods to simplify and organize the validation logic. Prefix every helper name with `_validation_`.
- Define only functions at module level: no module-level variables, constants or statements.
- Return only the method definition without any import statements or additional code.
- All input parameters will be provided in GMT+8 timezone.
- All parameters are optional (can be None). Perform rule validation only if the relevant parameter is provided.
- Always check each parameter for None before applying validation logic.
- The method should return a list of strings representing validation errors. If no errors are found, return an empty list.
- Each error string must be the exact text of the rule that was violated.
- Frequency can take one of the following values: "Adhoc", "Daily", "Weekly", "Monthly".
- Do not include any logging or print statements.

## Method Details:
Method name: `validateCustomerSchedulingParameters`
Method arguments (in this order):
    - year: int or None
    - month: int or None
    - day: int or None
    - hour: int or None
    - minute: int or None
    - duration_hours: float or None
    - frequency: str or None
Method output: list[str]

## Example:

### Input:
{ "validationRules": [ "Can't book an appointment less than 48 hours in advance for new clients.", "Appointments can only be booked up to 3 months in advance."] }

### Output:
def validateCustomerSchedulingParameters(year=None, month=None, day=None, hour=None, minute=None, duration_hours=None, frequency=None):
    errors = []

    if year is not None and month is not None and day is not None and hour is not None and minute is not None:
        scheduling_time = datetime(year, month, day, hour, minute)
        current_time = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=8)

        if scheduling_time < current_time + timedelta(hours=48):
            errors.append("Can't book an appointment less than 48 hours in advance for new clients.")

        if scheduling_time > current_time + timedelta(days=90):
            errors.append("Appointments can only be booked up to 3 months in advance.")

    return errors

## Notes
Ensure the output is plain Python code without any formatting or additional explanations."""


PARAMETERS_EXTRACTION_SYSTEM_PROMPT = """Your task is to transform natural language text into Python code that extracts datetime-related scheduling parameters from user input.

## Instructions:
- You are allowed to use only the "datetime" and "calendar" libraries.
- The names `datetime`, `date`, `timedelta`, `timezone` (from the datetime module) and `calendar` are already imported.
- You can define additional private helper methods to improve code readability. Prefix every helper name with `_extraction_`.
- Define only functions at module level: no module-level variables, constants or statements.
- Do not include any import statements in the output.
- Assume all input timestamps are provided in the GMT+8 timezone. Adjust calculations accordingly.
- The output should be a single method definition with the following characteristics:
  - Method name: `getCustomerSchedulingParameters`
  - Arguments: None
  - Return: A dictionary with the keys:
    - `appointment_date`: The day of the month (integer or `None`).
    - `appointment_month`: The month of the year (integer or `None`).
    - `appointment_year`: The year (integer or `None`).
    - `appointment_time_hour`: The hour of the day in 24-hour format (integer or `None`).
    - `appointment_time_minute`: The minute of the hour (integer or `None`).
    - `duration_hours`: The duration of the appointment in hours (float or `None`).
    - `frequency`: The recurrence of the appointment. Can be `"Adhoc"`, `"Daily"`, `"Weekly"`, or `"Monthly"` (string or `None`).

- If a specific value is not found in the text, return `None` for that field.
- Focus only on extracting values explicitly mentioned in the input text; do not make assumptions.
- Do not include print statements or logging in the output.

## Example:

### Input:
"I want to book an appointment for next Monday at 2pm for 2.5 hours."

### Output:
def getCustomerSchedulingParameters():
    def _get_next_monday():
        current_time = datetime.now(timezone.utc) + timedelta(hours=8)
        today = current_time.date()
        days_until_monday = (7 - today.weekday()) % 7 or 7
        return today + timedelta(days=days_until_monday)

    next_monday = _get_next_monday()
    return {
        "appointment_date": next_monday.day,
        "appointment_month": next_monday.month,
        "appointment_year": next_monday.year,
        "appointment_time_hour": 14,
        "appointment_time_minute": 0,
        "duration_hours": 2.5,
        "frequency": "Adhoc"
    }

### Notes:
Ensure the output is plain Python code without any formatting or additional explanations."""


SERVICES_PROMPT = (
    "Generate a list of up to 2 cleaning service names, separated by commas, non-numeric. "
    "Reply with the names only.\n\n"
    "Customer request: {user_input}\n\n"
    "What we offer:\n{knowledge_base}"
)

PRICING_TABLE_PROMPT = "Generate a short demo pricing table for service {service_name}"
