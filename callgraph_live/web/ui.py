HTML = """<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>Call Graph Monitor</title>
  <link rel="stylesheet" href="/monitor/styles/main.css"/>
</head>
<body>
  <h2>Call Graph (Live)</h2>
  <div id="controls">
    <label>Process <select id="pid"></select></label>
    <label>White list <input id="white" placeholder="regex"/></label>
    <label>Black list <input id="black" placeholder="regex"/></label>
    <button id="apply">Apply filters</button>
    <button id="clear">Reset graph</button>
    <span id="status"></span>
  </div>
  <table>
    <thead><tr><th>Count</th><th>Package</th><th>Class</th><th>Method</th><th>Called from</th></tr></thead>
    <tbody id="nodes"></tbody>
  </table>

  <script>
  (function startApp(){
    const rows = document.getElementById('nodes');
    const pidSel = document.getElementById('pid');
    const status = document.getElementById('status');

    async function send(method, path, body){
      const r = await fetch(path, {method, body});
      return r.text();
    }

    async function loadProcesses(){
      try{
        const r = await fetch('/process/ids');
        const data = await r.json();
        pidSel.innerHTML = '';
        data.process_id_available.forEach(id=>{
          const o = document.createElement('option');
          o.value = id; o.textContent = id;
          if (id === data.process_id_active) o.selected = true;
          pidSel.appendChild(o);
        });
        status.textContent = data.connected ? 'connected to ' + data.process_id_active : 'not connected';
      }catch(e){ console.error(e); }
    }

    function render(data){
      const byId = new Map(data.nodes.map(n=>[n.id, n]));
      const callers = new Map();
      data.links.forEach(l=>{
        const t = byId.get(l.target);
        if (!t) return;
        const list = callers.get(l.source) || [];
        list.push(t.className + '.' + t.methodName + ' x' + l.count);
        callers.set(l.source, list);
      });
      const sorted = data.nodes.slice().sort((a,b)=>b.count-a.count);
      rows.innerHTML = '';
      sorted.forEach(n=>{
        const tr = document.createElement('tr');
        if (n.isNewNode) tr.className = 'fresh';
        [n.count, n.packageName, n.className, n.methodName, (callers.get(n.id)||[]).join(', ')]
          .forEach(v=>{ const td = document.createElement('td'); td.textContent = v; tr.appendChild(td); });
        rows.appendChild(tr);
      });
    }

    async function refresh(){
      try{
        const r = await fetch('/process');
        render(await r.json());
      }catch(e){ console.error(e); }
    }

    pidSel.addEventListener('change', ()=>send('PUT', '/process/id', pidSel.value));
    document.getElementById('clear').addEventListener('click', ()=>send('DELETE', '/tasks'));
    document.getElementById('apply').addEventListener('click', async ()=>{
      for (const [id, path] of [['white', '/filterWhite'], ['black', '/filterBlack']]) {
        const v = document.getElementById(id).value;
        const res = v ? await send('PUT', path, v) : await send('DELETE', path);
        if (res !== 'OK') status.textContent = 'invalid ' + id + ' list';
      }
    });

    setInterval(refresh, 1000);
    setInterval(loadProcesses, 5000);
    loadProcesses();
    refresh();
  })();
  </script>
</body>
</html>
"""

MAIN_CSS = """body { background:#14181d; color:#e8eaed; font-family: ui-sans-serif,system-ui,Segoe UI,Arial; }
#controls { margin-bottom: 12px; }
#controls label { margin-right: 12px; }
table { border-collapse: collapse; width: 100%; }
th, td { border-bottom: 1px solid #2a2f36; padding: 2px 8px; text-align: left; }
tr.fresh td { color: #ff9900; }
"""

def render_html(title: str) -> str:
    return HTML.replace("<title>Call Graph Monitor</title>", f"<title>{title}</title>")
