from tipping.errors import ValidationError


def form_errors(form, message="Invalid submission"):
    """Turn WTForms errors into the API's ValidationError"""
    return ValidationError(
        message,
        errors={name or "form": list(messages) for name, messages in form.errors.items()},
    )
