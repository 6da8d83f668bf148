INDEX_HTML = r"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1" />
<title>Live Translate</title>
<style>
  :root { color-scheme: dark; font-family: system-ui, sans-serif; }
  body { margin: 0; background: #0f1115; color: #e6e6e6; }
  header { display: flex; gap: 12px; align-items: center; padding: 12px 16px; border-bottom: 1px solid #262a33; flex-wrap: wrap; }
  header h1 { font-size: 16px; margin: 0 12px 0 0; }
  .badge { padding: 2px 10px; border-radius: 999px; background: #262a33; font-size: 13px; }
  .badge.live { background: #1f6f43; }
  .badge.connecting { background: #7a5b12; }
  button, select, input { background: #1a1d24; color: inherit; border: 1px solid #333845; border-radius: 6px; padding: 6px 10px; }
  button:hover { border-color: #5b6273; cursor: pointer; }
  #error { display: none; background: #5c1d1d; padding: 8px 16px; }
  main { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; padding: 12px 16px; height: calc(100vh - 190px); }
  section { display: flex; flex-direction: column; min-height: 0; border: 1px solid #262a33; border-radius: 8px; }
  section h2 { font-size: 13px; text-transform: uppercase; letter-spacing: .05em; margin: 0; padding: 8px 12px; border-bottom: 1px solid #262a33; color: #9aa3b2; }
  .lines { flex: 1; overflow-y: auto; padding: 8px 12px; }
  .line { margin: 0 0 8px; line-height: 1.45; }
  .partial { color: #8b93a3; font-style: italic; }
  #summary { margin: 0 16px; padding: 8px 12px; border: 1px solid #262a33; border-radius: 8px; color: #b9c0cc; font-size: 13px; min-height: 20px; white-space: pre-wrap; }
  #settings { display: none; gap: 8px; padding: 8px 16px; border-bottom: 1px solid #262a33; flex-wrap: wrap; align-items: center; }
  #settings.open { display: flex; }
  label { font-size: 13px; color: #9aa3b2; }
</style>
</head>
<body>
<header>
  <h1>Live Translate</h1>
  <span id="status" class="badge">Idle</span>
  <label>Input
    <select id="inputLang">
      <option value="auto">Auto</option><option value="en">English</option>
      <option value="ja">Japanese</option><option value="ko">Korean</option>
    </select>
  </label>
  <label>Output
    <select id="targetLang">
      <option value="en">English</option><option value="ja">Japanese</option><option value="ko">Korean</option>
    </select>
  </label>
  <button id="toggle">Start</button>
  <button id="clearAll">Clear all</button>
  <button id="clearSummary">Clear summary</button>
  <button id="openSettings">Settings</button>
</header>
<div id="settings">
  <label>ElevenLabs key <input id="elevenlabsKey" type="password" autocomplete="off" /></label>
  <label>OpenAI key <input id="openaiKey" type="password" autocomplete="off" /></label>
  <button id="saveKeys">Save</button>
</div>
<div id="error"></div>
<main>
  <section><h2>Original</h2><div id="original" class="lines"></div></section>
  <section><h2>Translation</h2><div id="translation" class="lines"></div></section>
</main>
<div id="summary"></div>
<script>
(() => {
  const $ = (id) => document.getElementById(id);
  let state = { state: "idle", captureMode: "browser" };
  let ws = null;
  let capture = null;
  let starting = false;

  const WORKLET_SOURCE = `
    class TapProcessor extends AudioWorkletProcessor {
      process(inputs) {
        const input = inputs[0];
        if (input && input[0] && input[0].length > 0) {
          this.port.postMessage(input[0].slice(0));
        }
        return true;
      }
    }
    registerProcessor("tap-processor", TapProcessor);
  `;

  async function api(path, method = "POST", body = undefined) {
    const resp = await fetch(path, {
      method,
      headers: body ? { "Content-Type": "application/json" } : {},
      body: body ? JSON.stringify(body) : undefined,
    });
    const data = await resp.json().catch(() => ({}));
    if (!resp.ok) throw new Error(data.error || `Request failed (${resp.status})`);
    return data;
  }

  function showError(message) {
    const el = $("error");
    el.textContent = message || "";
    el.style.display = message ? "block" : "none";
  }

  function renderLines(container, lines, partial) {
    const nearBottom = container.scrollHeight - container.scrollTop - container.clientHeight < 40;
    container.replaceChildren();
    for (const line of lines) {
      const p = document.createElement("p");
      p.className = "line";
      p.textContent = line.text;
      container.appendChild(p);
    }
    if (partial) {
      const p = document.createElement("p");
      p.className = "line partial";
      p.textContent = partial;
      container.appendChild(p);
    }
    if (nearBottom) container.scrollTop = container.scrollHeight;
  }

  function render(next) {
    state = next;
    const status = $("status");
    status.textContent = next.status;
    status.className = "badge " + (next.state === "connected" ? "live" : next.state === "connecting" ? "connecting" : "");
    const busy = next.state === "connected" || next.state === "connecting";
    $("toggle").textContent = busy ? "Stop" : "Start";
    $("inputLang").disabled = busy;
    $("inputLang").value = next.inputLanguage;
    $("targetLang").value = next.outputLanguage;
    renderLines($("original"), next.committed, next.partialTranscript);
    renderLines($("translation"), next.translated, next.partialTranslation);
    $("summary").textContent = next.summary ? "Summary: " + next.summary : "";
    showError(next.lastError);
    if (!busy && capture && !starting) stopCapture();
  }

  async function startCapture() {
    const stream = await navigator.mediaDevices.getUserMedia({
      audio: { echoCancellation: true, noiseSuppression: true, autoGainControl: true, channelCount: 1 },
    });
    const context = new AudioContext();
    const workletUrl = URL.createObjectURL(new Blob([WORKLET_SOURCE], { type: "application/javascript" }));
    capture = { stream, context, workletUrl, nodes: [] };
    try {
      await context.audioWorklet.addModule(workletUrl);
    } catch (err) {
      stopCapture();
      throw new Error("Audio worklet failed to load: " + (err && err.message ? err.message : err));
    }
    const source = context.createMediaStreamSource(stream);
    const tap = new AudioWorkletNode(context, "tap-processor");
    const mute = context.createGain();
    mute.gain.value = 0;
    source.connect(tap);
    tap.connect(mute);
    mute.connect(context.destination);
    capture.nodes = [source, tap, mute];
    ws.send(JSON.stringify({ type: "capture.start", sampleRate: context.sampleRate }));
    tap.port.onmessage = (evt) => {
      if (ws && ws.readyState === WebSocket.OPEN) ws.send(evt.data.buffer);
    };
  }

  function stopCapture() {
    const current = capture;
    capture = null;
    if (!current) return;
    for (const node of current.nodes) {
      try { node.port && (node.port.onmessage = null); } catch (e) {}
      try { node.disconnect(); } catch (e) {}
    }
    try { current.stream.getTracks().forEach((t) => t.stop()); } catch (e) {}
    try { current.context.close(); } catch (e) {}
    try { URL.revokeObjectURL(current.workletUrl); } catch (e) {}
    if (ws && ws.readyState === WebSocket.OPEN) ws.send(JSON.stringify({ type: "capture.stop" }));
  }

  async function start() {
    starting = true;
    try {
      if (state.captureMode === "browser") await startCapture();
      await api("/api/session/connect");
    } catch (err) {
      const message = err && err.message ? err.message : "Failed to start realtime transcription.";
      if (ws && ws.readyState === WebSocket.OPEN) ws.send(JSON.stringify({ type: "capture.error", error: message }));
      stopCapture();
      showError(message);
    } finally {
      starting = false;
    }
  }

  function openSocket() {
    const scheme = location.protocol === "https:" ? "wss" : "ws";
    ws = new WebSocket(`${scheme}://${location.host}/ws`);
    ws.binaryType = "arraybuffer";
    ws.onmessage = (evt) => {
      let msg;
      try { msg = JSON.parse(evt.data); } catch (e) { return; }
      if (msg.type === "state") render(msg);
    };
    ws.onclose = () => {
      stopCapture();
      setTimeout(openSocket, 1000);
    };
  }

  async function savePreferences(changes) {
    try { await api("/api/preferences", "PUT", changes); } catch (err) { showError(err.message); }
  }

  $("toggle").onclick = () => {
    const busy = state.state === "connected" || state.state === "connecting";
    if (busy) api("/api/session/disconnect").catch((err) => showError(err.message));
    else start();
  };
  $("clearAll").onclick = () => api("/api/session/reset").catch((err) => showError(err.message));
  $("clearSummary").onclick = () => api("/api/session/clear-summary").catch((err) => showError(err.message));
  $("inputLang").onchange = (e) => savePreferences({ "lt.inputLang": e.target.value });
  $("targetLang").onchange = (e) => savePreferences({ "lt.targetLang": e.target.value });
  $("openSettings").onclick = () => $("settings").classList.toggle("open");
  $("saveKeys").onclick = () => savePreferences({
    "lt.elevenlabsKey": $("elevenlabsKey").value.trim(),
    "lt.openaiKey": $("openaiKey").value.trim(),
  });

  api("/api/preferences", "GET").then((prefs) => {
    $("elevenlabsKey").value = prefs["lt.elevenlabsKey"] || "";
    $("openaiKey").value = prefs["lt.openaiKey"] || "";
  }).catch(() => {});
  openSocket();
})();
</script>
</body>
</html>
"""
