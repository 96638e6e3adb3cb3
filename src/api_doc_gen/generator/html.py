"""Self-contained HTML page renderer.

The page embeds the OpenAPI document as JSON and renders it in the browser
with a small inline script. It loads nothing from the network.
"""

import html
import json
import re

from api_doc_gen.generator.openapi import build_openapi
from api_doc_gen.model.routes import RouteModel

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>__TITLE__</title>
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; background: #f5f5f5; }
  header { background: #2c3e50; color: #fff; padding: 1rem 2rem; }
  header h1 { margin: 0; font-size: 1.6rem; }
  header p { margin: 0.25rem 0 0; color: #cfd8dc; }
  .layout { display: flex; max-width: 1200px; margin: 0 auto; }
  nav { width: 220px; padding: 1rem; position: sticky; top: 0; align-self: flex-start; }
  nav a { display: block; color: #34495e; text-decoration: none; padding: 0.2rem 0; }
  nav a:hover { color: #3498db; }
  main { flex: 1; padding: 1rem 2rem; }
  #filter { width: 100%; padding: 0.5rem; font-size: 1rem; margin-bottom: 1rem; box-sizing: border-box; }
  h2 { border-bottom: 2px solid #ecf0f1; padding-bottom: 0.3rem; }
  details.op { background: #fff; margin: 0.5rem 0; border-left: 4px solid #3498db; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }
  details.op.deprecated { opacity: 0.6; }
  summary { cursor: pointer; padding: 0.5rem 1rem; }
  .op-body { padding: 0 1rem 1rem; }
  .method { font-weight: bold; padding: 0.2rem 0.5rem; border-radius: 3px; color: #fff; font-size: 0.85rem; margin-right: 0.5rem; }
  .method-get { background: #27ae60; }
  .method-post { background: #3498db; }
  .method-put { background: #f39c12; }
  .method-patch { background: #e67e22; }
  .method-delete { background: #e74c3c; }
  .method-options, .method-head { background: #7f8c8d; }
  code { font-family: Consolas, Monaco, monospace; }
  table { width: 100%; border-collapse: collapse; margin: 0.5rem 0; }
  th, td { padding: 0.4rem; text-align: left; border-bottom: 1px solid #ddd; }
  th { background: #34495e; color: #fff; }
</style>
</head>
<body>
<header><h1 id="title"></h1><p id="subtitle"></p></header>
<div class="layout">
  <nav id="nav"></nav>
  <main>
    <input id="filter" type="search" placeholder="Filter by path, method, summary or tag">
    <div id="content"></div>
    <noscript>This page needs JavaScript to display the API description.</noscript>
  </main>
</div>
<script type="application/json" id="api-spec">__SPEC_JSON__</script>
<script>
(function () {
  var spec = JSON.parse(document.getElementById('api-spec').textContent);
  var METHODS = ['get', 'post', 'put', 'patch', 'delete', 'options', 'head'];

  function el(tag, attrs, children) {
    var node = document.createElement(tag);
    Object.keys(attrs || {}).forEach(function (k) { node.setAttribute(k, attrs[k]); });
    (children || []).forEach(function (c) {
      node.appendChild(typeof c === 'string' ? document.createTextNode(c) : c);
    });
    return node;
  }

  function table(headers, rows) {
    var head = el('tr', {}, headers.map(function (h) { return el('th', {}, [h]); }));
    var body = rows.map(function (r) {
      return el('tr', {}, r.map(function (c) { return el('td', {}, [String(c)]); }));
    });
    return el('table', {}, [head].concat(body));
  }

  function schemaLabel(schema) {
    if (!schema) { return '-'; }
    if (schema.$ref) { return schema.$ref.split('/').pop(); }
    if (schema.type === 'array') { return schemaLabel(schema.items) + '[]'; }
    return schema.type || 'any';
  }

  function renderOperation(path, method, op) {
    var head = el('summary', {}, [
      el('span', {'class': 'method method-' + method}, [method.toUpperCase()]),
      el('code', {}, [path]),
      ' ' + (op.summary || '')
    ]);
    var body = el('div', {'class': 'op-body'});
    if (op.description) { body.appendChild(el('p', {}, [op.description])); }
    if (op.parameters && op.parameters.length) {
      body.appendChild(el('h4', {}, ['Parameters']));
      body.appendChild(table(['Name', 'In', 'Type', 'Required', 'Description'],
        op.parameters.map(function (p) {
          return [p.name, p.in, schemaLabel(p.schema), p.required ? 'Yes' : 'No', p.description || '-'];
        })));
    }
    if (op.requestBody) {
      var schema = op.requestBody.content['application/json'].schema;
      var required = schema.required || [];
      body.appendChild(el('h4', {}, ['Request body']));
      body.appendChild(table(['Field', 'Type', 'Required', 'Description'],
        Object.keys(schema.properties || {}).map(function (name) {
          var prop = schema.properties[name];
          return [name, schemaLabel(prop), required.indexOf(name) >= 0 ? 'Yes' : 'No', prop.description || '-'];
        })));
    }
    body.appendChild(el('h4', {}, ['Responses']));
    body.appendChild(table(['Status', 'Description', 'Schema'],
      Object.keys(op.responses).map(function (code) {
        var r = op.responses[code];
        var s = r.content && r.content['application/json'] ? schemaLabel(r.content['application/json'].schema) : '-';
        return [code, r.description, s];
      })));
    if (op.security && op.security.length) {
      body.appendChild(el('p', {}, ['Security: ' + op.security.map(function (s) {
        return Object.keys(s)[0];
      }).join(', ')]));
    }
    var attrs = {'class': 'op' + (op.deprecated ? ' deprecated' : '')};
    attrs['data-search'] = [method, path, op.summary || '', (op.tags || []).join(' ')].join(' ').toLowerCase();
    return el('details', attrs, [head, body]);
  }

  function groups() {
    var byTag = {};
    var untagged = [];
    Object.keys(spec.paths).forEach(function (path) {
      METHODS.forEach(function (method) {
        var op = spec.paths[path][method];
        if (!op) { return; }
        var entry = [path, method, op];
        var tags = op.tags || [];
        if (!tags.length || tags.indexOf('Untagged') !== -1) { untagged.push(entry); }
        tags.forEach(function (t) {
          if (t !== 'Untagged') { (byTag[t] = byTag[t] || []).push(entry); }
        });
      });
    });
    var result = Object.keys(byTag).sort().map(function (t) { return [t, byTag[t]]; });
    if (untagged.length) { result.push(['Untagged', untagged]); }
    return result;
  }

  var tagDescriptions = {};
  (spec.tags || []).forEach(function (t) { tagDescriptions[t.name] = t.description || ''; });

  document.getElementById('title').textContent = spec.info.title + ' ' + spec.info.version;
  document.getElementById('subtitle').textContent = spec.info.description || '';
  document.title = spec.info.title;

  var nav = document.getElementById('nav');
  var content = document.getElementById('content');
  groups().forEach(function (group, i) {
    var id = 'tag-' + i;
    nav.appendChild(el('a', {'href': '#' + id}, [group[0] + ' (' + group[1].length + ')']));
    var section = el('section', {'id': id}, [el('h2', {}, [group[0]])]);
    if (tagDescriptions[group[0]]) { section.appendChild(el('p', {}, [tagDescriptions[group[0]]])); }
    group[1].forEach(function (entry) { section.appendChild(renderOperation(entry[0], entry[1], entry[2])); });
    content.appendChild(section);
  });

  document.getElementById('filter').addEventListener('input', function (e) {
    var q = e.target.value.toLowerCase();
    Array.prototype.forEach.call(document.querySelectorAll('details.op'), function (d) {
      d.style.display = d.getAttribute('data-search').indexOf(q) >= 0 ? '' : 'none';
    });
  });
})();
</script>
</body>
</html>
"""


def embed_json(document: dict) -> str:
    """Serialize *document* so it can sit inside a ``<script>`` element."""
    text = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def render_html(model: RouteModel) -> bytes:
    values = {
        "TITLE": html.escape(model.info.title),
        "SPEC_JSON": embed_json(build_openapi(model)),
    }
    page = re.sub(r"__(TITLE|SPEC_JSON)__", lambda m: values[m.group(1)], PAGE_TEMPLATE)
    return page.encode("utf-8")
