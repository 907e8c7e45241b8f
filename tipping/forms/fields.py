"""
WTForms fields for JSON request bodies

FlaskForm reads JSON bodies into a MultiDict, which stores a JSON list as
the field's value list. These fields take that list as-is instead of the
first element only.
"""

from wtforms import Field, StringField
from wtforms.validators import ValidationError


def _clean_id(value):
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip() or None


class IdField(StringField):
    """A single driver / team id; blank becomes None"""

    def process_formdata(self, valuelist):
        if valuelist:
            self.data = _clean_id(valuelist[0])


class IdListField(Field):
    """List of driver / constructor ids"""

    def __init__(self, label=None, validators=None, unique=True, **kwargs):
        kwargs.setdefault("default", list)
        super().__init__(label, validators, **kwargs)
        self.unique = unique

    def process_formdata(self, valuelist):
        self.data = list(valuelist)

    def pre_validate(self, form):
        cleaned = []
        for value in self.data or []:
            if isinstance(value, (dict, list, bool)) or _clean_id(value) is None:
                raise ValidationError("Every entry must be a non-empty id")
            cleaned.append(_clean_id(value))
        if self.unique and len(set(cleaned)) != len(cleaned):
            raise ValidationError("Entries must not repeat")
        self.data = cleaned

    def _value(self):
        return ",".join(self.data or [])


class IntegerListField(Field):
    """List of record ids"""

    def __init__(self, label=None, validators=None, **kwargs):
        kwargs.setdefault("default", list)
        super().__init__(label, validators, **kwargs)

    def process_formdata(self, valuelist):
        self.data = list(valuelist)

    def pre_validate(self, form):
        cleaned = []
        for value in self.data or []:
            if isinstance(value, bool):
                raise ValidationError("Every entry must be an integer id")
            try:
                cleaned.append(int(value))
            except (TypeError, ValueError):
                raise ValidationError("Every entry must be an integer id")
        self.data = sorted(set(cleaned))


class GridField(Field):
    """Future grid: list of {"driver_id": ..., "team_id": ...} pairings"""

    def __init__(self, label=None, validators=None, **kwargs):
        kwargs.setdefault("default", list)
        super().__init__(label, validators, **kwargs)

    def process_formdata(self, valuelist):
        self.data = list(valuelist)

    def pre_validate(self, form):
        cleaned = []
        for pairing in self.data or []:
            if not isinstance(pairing, dict):
                raise ValidationError("Each pairing must be an object")
            driver_id = _clean_id(pairing.get("driver_id"))
            team_id = _clean_id(pairing.get("team_id"))
            if not driver_id or not team_id:
                raise ValidationError("Each pairing needs driver_id and team_id")
            cleaned.append({"driver_id": driver_id, "team_id": team_id})

        drivers = [pairing["driver_id"] for pairing in cleaned]
        if len(set(drivers)) != len(drivers):
            raise ValidationError("A driver can only be placed once")
        self.data = cleaned


class OptionalBooleanField(Field):
    """true / false / null"""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] is None:
            self.data = None
        elif isinstance(valuelist[0], bool):
            self.data = valuelist[0]
        else:
            value = str(valuelist[0]).strip().lower()
            if value in ("true", "1", "yes"):
                self.data = True
            elif value in ("false", "0", "no"):
                self.data = False
            elif value in ("", "null", "none"):
                self.data = None
            else:
                self.data = None
                raise ValueError("Must be true, false or null")
