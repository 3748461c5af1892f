#!/usr/bin/env python3
"""
Desktop GUI for the terms converter using ttkbootstrap.
"""
import os, sys, subprocess, threading, queue, platform, webbrowser
from enum import Enum
from pathlib import Path
import ttkbootstrap as tb
from ttkbootstrap.constants import *
from ttkbootstrap.toast import ToastNotification
from tkinter import filedialog
from dotenv import load_dotenv

from terms_converter import DEFAULT_MODEL, UNSUPPORTED_MESSAGE, is_supported_file
load_dotenv()


try:
    from tkinterdnd2 import DND_FILES, TkinterDnD
    DND_AVAILABLE = True
except Exception:
    DND_AVAILABLE = False


class AppStatus(Enum):
    IDLE = "Ready"
    CONVERTING = "Converting…"
    SUCCESS = "Converted"
    ERROR = "Conversion failed"


FILE_TYPES = [("Terms documents", "*.docx *.pdf *.doc"), ("All files", "*.*")]

HERE = Path(__file__).resolve().parent

# Log lines that carry a user-facing message after "<prefix><path or name>: "
_ERROR_PREFIXES = ("Failed processing ", "Conversion error for ")


def converter_command(inp, outp, model):
    script = str(HERE / "terms_converter.py")
    return [sys.executable, script, "--input", inp, "--output", outp, "--model", model, "--preview"]


def stream_process(cmd, log_q):
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        for line in iter(proc.stdout.readline, ""):
            log_q.put(line.rstrip("\n"))
        code = proc.wait()
        log_q.put(f"[done] {code}")
    except Exception as e:
        log_q.put(f"[error] {e}")


def run_converter_async(inp, outp, model, log_q):
    stream_process(converter_command(inp, outp, model), log_q)


def error_message(line):
    """Pull the user-facing message out of an [ERROR] log line."""
    msg = line.split("[ERROR]", 1)[1].strip()
    for prefix in _ERROR_PREFIXES:
        if msg.startswith(prefix) and ": " in msg:
            return msg.split(": ", 1)[1]
    return msg


class App(tb.Window if not DND_AVAILABLE else TkinterDnD.Tk):  # type: ignore[misc]
    def __init__(self, themename="flatly"):
        if DND_AVAILABLE:
            super().__init__(); tb.Style(theme=themename)
        else:
            super().__init__(themename=themename)
        self.title("Terms2HTML Converter")
        self.geometry("980x680"); self.minsize(880, 580)
        self.log_q = queue.Queue()
        self.status_value = AppStatus.IDLE
        self.last_error = ""
        self.html = ""
        self._build_ui(); self._poll_log()

    def _build_ui(self):
        header = tb.Frame(self, padding=16); header.pack(side=TOP, fill=X)
        tb.Label(header, text="Convert terms documents to HTML", font=("Inter", 20, "bold")).pack(anchor="w")
        tb.Label(header, text='Wording kept as-is, tags only, inside <div class="termsInner">', bootstyle="secondary").pack(anchor="w", pady=(2,0))

        body = tb.Frame(self, padding=(16,0,16,16)); body.pack(fill=BOTH, expand=YES)

        left = tb.Labelframe(body, text=" Settings ", padding=14, bootstyle="secondary")
        left.pack(side=LEFT, fill=Y, padx=(0,12))

        self.in_var = tb.StringVar(); self._entry_with_browse(left, "Document", self.in_var, self._choose_in).pack(fill=X, pady=4)
        self.out_var = tb.StringVar(); self._entry_with_browse(left, "Output folder", self.out_var, self._choose_out).pack(fill=X, pady=4)
        self.model_var = tb.StringVar(value=os.getenv("OPENAI_MODEL", DEFAULT_MODEL)); self._entry_with_label(left, "LLM Model", self.model_var).pack(fill=X, pady=4)
        tb.Label(left, text="DOCX or PDF recommended; legacy DOC is best effort.", bootstyle="secondary").pack(anchor="w", pady=(2,6))

        btn_row = tb.Frame(left)
        self.run_btn = tb.Button(btn_row, text="▶ Convert", command=self._on_run, bootstyle=SUCCESS); self.run_btn.pack(side=LEFT)
        tb.Button(btn_row, text="New conversion", command=self._on_reset, bootstyle=SECONDARY).pack(side=LEFT, padx=8); btn_row.pack(anchor="w", pady=(6,2))

        self.api_lbl = tb.Label(left, text=self._api_status_text(), bootstyle="warning"); self.api_lbl.pack(anchor="w", pady=(6,2))

        if DND_AVAILABLE and platform.system() != "Windows":
            tb.Label(left, text="Tip: Drag a document into the right panel", bootstyle="secondary").pack(anchor="w", pady=(6,2))

        right = tb.Frame(body); right.pack(side=LEFT, fill=BOTH, expand=YES)
        self.tabs = tb.Notebook(right, bootstyle="secondary"); self.tabs.pack(fill=BOTH, expand=YES)
        from ttkbootstrap.scrolled import ScrolledText
        self.source = ScrolledText(self.tabs, autohide=True, height=22, padding=2)
        self.log = ScrolledText(self.tabs, autohide=True, height=22, padding=2, bootstyle="dark")
        self.tabs.add(self.source, text=" HTML source ")
        self.tabs.add(self.log, text=" Log ")

        result_row = tb.Frame(right, padding=(0,8,0,0)); result_row.pack(fill=X)
        self.copy_btn = tb.Button(result_row, text="Copy code", command=self._on_copy, bootstyle=PRIMARY, state=DISABLED); self.copy_btn.pack(side=LEFT)
        self.preview_btn = tb.Button(result_row, text="Open preview", command=self._on_preview, bootstyle=INFO, state=DISABLED); self.preview_btn.pack(side=LEFT, padx=8)

        if DND_AVAILABLE and platform.system() != "Windows":
            try:
                for target in (self.source, self.log):
                    target.drop_target_register(DND_FILES)
                    target.dnd_bind("<<Drop>>", self._on_drop)
            except Exception:
                pass

        footer = tb.Frame(self, padding=10); footer.pack(side=BOTTOM, fill=X)
        self.status = tb.Label(footer, text=AppStatus.IDLE.value, bootstyle="secondary"); self.status.pack(side=LEFT)

        self.bind("<Return>", lambda e: self._on_run())

    def _api_status_text(self):
        return "✅ API key detected" if os.getenv("OPENAI_API_KEY") else "⚠️ API key missing (.env or environment)"

    def _entry_with_browse(self, parent, label, var, callback):
        row = tb.Frame(parent); tb.Label(row, text=label).pack(side=LEFT)
        tb.Entry(row, textvariable=var, width=34).pack(side=LEFT, padx=8)
        tb.Button(row, text="Browse…", command=callback, bootstyle=PRIMARY).pack(side=LEFT); return row

    def _entry_with_label(self, parent, label, var):
        row = tb.Frame(parent); tb.Label(row, text=label).pack(side=LEFT)
        tb.Entry(row, textvariable=var, width=34).pack(side=LEFT, padx=8); return row

    def _choose_in(self):
        f = filedialog.askopenfilename(title="Select Terms Document", filetypes=FILE_TYPES)
        if f: self._set_input(f)

    def _choose_out(self):
        d = filedialog.askdirectory(title="Select Output Folder")
        if d: self.out_var.set(d)

    def _set_input(self, path):
        if not is_supported_file(path):
            self._toast("Unsupported file", UNSUPPORTED_MESSAGE, bootstyle="danger"); return
        self.in_var.set(path)
        if not self.out_var.get(): self.out_var.set(str(Path(path).parent / "html"))

    def _set_status(self, status, detail=""):
        self.status_value = status
        self.status.config(text=f"{status.value}: {detail}" if detail else status.value)
        busy = status is AppStatus.CONVERTING
        self.run_btn.config(state=DISABLED if busy else NORMAL)
        done = status is AppStatus.SUCCESS
        self.copy_btn.config(state=NORMAL if done else DISABLED)
        self.preview_btn.config(state=NORMAL if done else DISABLED)

    def _on_run(self):
        if self.status_value is AppStatus.CONVERTING: return
        inp, outp, model = self.in_var.get().strip(), self.out_var.get().strip(), self.model_var.get().strip()
        if not inp or not outp: self._toast("Missing paths", "Select a document and an output folder.", bootstyle="danger"); return
        if not os.getenv("OPENAI_API_KEY"): self._toast("API key missing", "Set OPENAI_API_KEY and try again.", bootstyle="warning"); return
        self.api_lbl.config(text=self._api_status_text())
        self.html = ""; self.last_error = ""
        self.source.delete("1.0", "end"); self.log.delete("1.0", "end")
        self.log.insert("end", f"▶ Converting {inp}\nOutput: {outp}\nModel: {model}\n\n")
        self.tabs.select(self.log)
        self._set_status(AppStatus.CONVERTING)
        threading.Thread(target=run_converter_async, args=(inp, outp, model, self.log_q), daemon=True).start()

    def _on_reset(self):
        if self.status_value is AppStatus.CONVERTING: return
        self.html = ""; self.last_error = ""
        self.in_var.set("")
        self.source.delete("1.0", "end"); self.log.delete("1.0", "end")
        self._set_status(AppStatus.IDLE)

    def _result_path(self, suffix=".html"):
        return Path(self.out_var.get().strip()) / f"{Path(self.in_var.get().strip()).stem}{suffix}"

    def _on_finished(self, code):
        path = self._result_path()
        if code != 0 or not path.exists():
            self._set_status(AppStatus.ERROR, self.last_error or f"exit code {code}")
            self._toast("Conversion failed", self.last_error or f"Exit code: {code}", bootstyle="danger"); return
        self.html = path.read_text(encoding="utf-8").strip()
        self.source.delete("1.0", "end"); self.source.insert("end", self.html)
        self.tabs.select(self.source)
        self._set_status(AppStatus.SUCCESS, path.name)
        self._toast("Conversion finished", str(path), bootstyle="success")

    def _on_copy(self):
        if not self.html: return
        self.clipboard_clear(); self.clipboard_append(self.html)
        self._toast("Copied", "HTML copied to clipboard", duration=2000, bootstyle="success")

    def _on_preview(self):
        page = self._result_path(".preview.html")
        if page.exists(): webbrowser.open(page.resolve().as_uri())
        else: self._toast("No preview", f"{page.name} was not written", bootstyle="warning")

    def _poll_log(self):
        try:
            while True:
                line = self.log_q.get_nowait()
                if line.startswith("[done]"):
                    self._on_finished(int(line.split()[1]))
                elif line.startswith("[error]"):
                    self.last_error = line[len("[error] "):]
                    self._set_status(AppStatus.ERROR, self.last_error); self._toast("Error", line, bootstyle="danger")
                else:
                    if "[ERROR]" in line:
                        self.last_error = error_message(line)
                    self.log.insert("end", line + "\n"); self.log.see("end")
        except queue.Empty:
            pass
        finally:
            self.after(120, self._poll_log)

    def _on_drop(self, event):
        try:
            paths = self.tk.splitlist(event.data)
        except Exception:
            paths = []
        if not paths: return
        p = Path(paths[0])
        if p.is_file(): self._set_input(str(p))
        else: self._toast("Drop a file", "Please drop a single document, not a folder.", bootstyle="warning")

    def _toast(self, title, message, duration=2500, bootstyle="info"):
        ToastNotification(title=title, message=message, duration=duration, bootstyle=bootstyle, position=(None, 64, "ne")).show()


def main():
    app = App(themename="flatly"); app.mainloop()


if __name__ == "__main__":
    main()
