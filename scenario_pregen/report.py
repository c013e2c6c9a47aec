"""HTML reporting for pre-generation runs."""
from pathlib import Path
import orjson
from jinja2 import Template

TEMPLATE = """<!DOCTYPE html>
<html lang=\"en\">
<head>
<meta charset=\"UTF-8\" />
<title>Scenario Pre-generation Report</title>
<style>
body { font-family: system-ui, sans-serif; line-height:1.4; }
table { border-collapse: collapse; width: 100%; margin-bottom: 1rem; }
th, td { border:1px solid #ccc; padding:4px 6px; vertical-align: top; text-align: left; }
th { background:#f2f2f2; }
.badge-pass { background:#007c00; color:#fff; padding:2px 6px; border-radius:4px; }
.badge-fail { background:#a00; color:#fff; padding:2px 6px; border-radius:4px; }
header, main, footer { max-width: 1200px; margin: 0 auto; }
a.skip-link { position:absolute; left:0; top:-40px; background:#000; color:#fff; padding:8px; }
header:focus-within a.skip-link { top: 0; }
.success-bar { height:8px; background:#eee; position:relative; border-radius:4px; overflow:hidden; margin:1rem 0; }
.success-bar span { position:absolute; left:0; top:0; bottom:0; background:#0a0; }
</style>
</head>
<body>
<a href=\"#main\" class=\"skip-link\">Skip to main content</a>
<header>
<h1>Scenario Pre-generation</h1>
<p>Run ID: {{ run_id }} | Mode: {{ mode }}{% if stopped %} | <span class="badge-fail">stopped early</span>{% endif %}</p>
</header>
<main id=\"main\">
<section aria-labelledby=\"summary-h2\">
<h2 id=\"summary-h2\">Summary</h2>
<table>
<tbody>
<tr><th>Generated</th><td><span class="badge-pass">{{ total_generated }}</span></td></tr>
<tr><th>Attempted</th><td>{{ attempted }}</td></tr>
<tr><th>Errors</th><td>{% if errors %}<span class="badge-fail">{{ errors|length }}</span>{% else %}0{% endif %}</td></tr>
<tr><th>Processing time</th><td>{{ "%.2f"|format(processing_time) }}s</td></tr>
<tr><th>Locales</th><td>{{ locales|join(", ") }}</td></tr>
{% if estimated_total is not none %}<tr><th>Estimated grid size</th><td>{{ estimated_total }}</td></tr>{% endif %}
</tbody>
</table>
<div class="success-bar" role="img" aria-label="Success ratio - {{ "%.0f"|format(success_pct) }} percent"><span style="width: {{ success_pct }}%"></span></div>
</section>
<section aria-labelledby=\"goal-h2\">
<h2 id=\"goal-h2\">By goal</h2>
<table>
<thead><tr><th>Goal</th><th>Scenarios</th></tr></thead>
<tbody>
{% for goal, n in by_goal %}<tr><td>{{ goal }}</td><td>{{ n }}</td></tr>{% endfor %}
</tbody>
</table>
<h2>By locale</h2>
<table>
<thead><tr><th>Locale</th><th>Scenarios</th></tr></thead>
<tbody>
{% for locale, n in by_locale %}<tr><td>{{ locale }}</td><td>{{ n }}</td></tr>{% endfor %}
</tbody>
</table>
</section>
{% if errors %}
<section aria-labelledby=\"errors-h2\">
<h2 id=\"errors-h2\">Errors</h2>
<details>
<summary>{{ errors|length }} failed items</summary>
<table>
<thead><tr><th>Locale</th><th>Parameters</th><th>Message</th></tr></thead>
<tbody>
{% for e in errors %}
<tr><td>{{ e.locale }}</td><td><code>{{ e.params }}</code></td><td>{{ e.message }}</td></tr>
{% endfor %}
</tbody>
</table>
</details>
</section>
{% endif %}
</main>
</body>
</html>
"""


def render_report(run_json_path: Path, out_html: Path):
    data = orjson.loads(Path(run_json_path).read_bytes())
    result = data.get("result", {}) or {}
    attempted = result.get("attempted", 0)
    generated = result.get("total_generated", 0)
    html = Template(TEMPLATE, autoescape=True).render(
        run_id=data.get("run_id", "unknown"),
        mode=data.get("mode", "grid"),
        locales=data.get("locales", []),
        estimated_total=data.get("estimated_total"),
        total_generated=generated,
        attempted=attempted,
        processing_time=result.get("processing_time", 0.0),
        stopped=result.get("stopped", False),
        success_pct=(100.0 * generated / attempted) if attempted else 0.0,
        by_goal=sorted((result.get("by_goal") or {}).items(), key=lambda x: (-x[1], x[0])),
        by_locale=sorted((result.get("by_locale") or {}).items()),
        errors=result.get("errors", []),
    )
    Path(out_html).write_text(html, encoding="utf-8")
