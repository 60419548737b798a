"""Generate .env.example listing every setting with its default."""
from pathlib import Path

from meeting_tool.config import Settings

root = Path(__file__).resolve().parents[1]
dest = root / '.env.example'

secret_fields = {'aws_access_key_id', 'aws_secret_access_key', 'aws_session_token'}

lines = []
for name, field in Settings.model_fields.items():
    default = field.default
    if name in secret_fields or default is None:
        value = ''
    elif isinstance(default, list):
        value = ','.join(str(item) for item in default)
    else:
        value = str(default)
    lines.append(f"{name.upper()}={value}")

dest.write_text('\n'.join(lines) + '\n')
print(f'Wrote template to {dest}')
