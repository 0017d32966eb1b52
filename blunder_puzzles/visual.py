"""
Módulo de visualização responsável por toda a lógica de estilo visual e exibição no console.
Utiliza a biblioteca Rich para formatação de texto, painéis, tabelas e barras de progresso.
"""
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn, TimeRemainingColumn
from rich.table import Table
from rich.text import Text

# Console compartilhado: o logging também escreve por ele
console = Console()


# Exibe o tempo decorrido somando um offset de execuções anteriores (--resume)
class CustomTimeElapsedColumn(TimeElapsedColumn):
    def __init__(self, elapsed_offset=0, **kwargs):
        super().__init__(**kwargs)
        self.elapsed_offset = elapsed_offset

    def _format_time(self, seconds):
        m, s = divmod(int(seconds), 60)
        h, m = divmod(m, 60)
        if h:
            return f"{h:d}:{m:02d}:{s:02d}"
        return f"{m:d}:{s:02d}"

    def render(self, task):
        total_elapsed = (task.elapsed if task.elapsed is not None else 0) + self.elapsed_offset
        return Text(self._format_time(total_elapsed), style="green")


# Cria e configura a barra de progresso
def create_progress(elapsed_offset=0):
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40, complete_style="green", finished_style="green"),
        TextColumn("[bold]{task.completed}/{task.total}"),
        TextColumn("{task.percentage:>3.1f}%"),
        CustomTimeElapsedColumn(elapsed_offset=elapsed_offset),
        "[cyan]ETA:[/]",
        TimeRemainingColumn(),
        console=console,
        transient=True,
        refresh_per_second=5,
    )


def progress_description(stats, running):
    return (
        f"[yellow]Analisando partidas ({running} em andamento)... "
        f"[green]Puzzles: {stats.puzzles_found} [red]Rejeitados: {stats.puzzles_rejected}"
    )


def print_engine_info(engine_path):
    console.print(f"[bold blue]Usando motor em:[/] {engine_path}")


def print_resume_info(processed):
    console.print(f"[green]Retomando análise: {processed} partida(s) já processada(s)...[/]")


# Cabeçalho inicial com detalhes da entrada
def print_initial_analysis_info(input_path, file_size, total_games, pending_games, workers):
    console.print("[bold cyan]Iniciando a busca por blunders...[/]")
    console.print(f"Entrada: [magenta]{input_path}[/] ([cyan]{file_size}[/])")
    console.print(f"Total de partidas: [cyan]{total_games}[/]  •  a analisar: [cyan]{pending_games}[/]")
    console.print(f"Workers (um motor cada): [cyan]{workers}[/]\n")


# Mostra o puzzle encontrado acima da barra de progresso
def print_puzzle_found(progress, number, puzzle):
    progress.print(f"[bold yellow]Puzzle #{number}:[/bold yellow] {puzzle.title}")
    progress.print(f"  [dim]{puzzle.fen}[/dim]")
    solution = " ".join(step if isinstance(step, str) else "{" + "|".join(step) + "}" for step in puzzle.solution)
    progress.print(f"  Erro: [red]{puzzle.mistake}[/red]  Solução: [green]{solution}[/green]\n")


def print_error(message):
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message):
    console.print(f"[yellow]{message}[/yellow]")


def print_success(message):
    console.print(f"[bold green]{message}[/bold green]")


def print_main_header():
    console.print("\n[bold blue]♟️  Chess Blunder Puzzles[/bold blue]", justify="center")


# Configurações utilizadas
def print_configurations(input_path, settings, verbose, resume, pgn_path=None):
    console.print("[bold cyan]⚙️  Configurações:[/bold cyan]")
    console.print(f"📥 Entrada:           [cyan]{input_path}[/cyan]")
    console.print(f"📤 Resultados:        [cyan]{settings.results_path}[/cyan]")
    if pgn_path:
        console.print(f"📄 PGN:               [cyan]{pgn_path}[/cyan]")
    console.print(f"🔍 Profundidade:      [cyan]{settings.shallow_depth}[/cyan] (+{settings.confirm_depth} na confirmação)")
    console.print(f"🧪 Verificação:       [cyan]{settings.verify_depth}[/cyan] (delta {settings.verify_delta} cp)")
    console.print(f"💥 Blunder:           [cyan]{settings.blunder_magnitude} cp[/cyan]")
    console.print(f"👷 Workers:           [cyan]{settings.workers}[/cyan]")
    console.print(f"🗣️  Verbose:           [cyan]{'Sim' if verbose else 'Não'}[/cyan]")
    console.print(f"⏯️  Retomar:           [cyan]{'Sim' if resume else 'Não'}[/cyan]\n")


# Renderiza as estatísticas finais da análise
def render_end_statistics(game_count, blunders_found, puzzles_found, puzzles_rejected, games_failed,
                          total_time, average_time_per_game, rejection_reasons, result_stats, output_path=None):
    print_end_stats(game_count, blunders_found, puzzles_found, puzzles_rejected, games_failed)
    print_performance_stats(total_time, average_time_per_game, game_count, puzzles_found)
    if puzzles_rejected > 0:
        print_rejection_reasons(rejection_reasons, puzzles_rejected)
    if puzzles_found > 0:
        print_puzzle_results(result_stats, puzzles_found)
    if output_path:
        print_output_file_info(output_path)


def print_end_stats(game_count, blunders_found, puzzles_found, puzzles_rejected, games_failed):
    text = (
        f"[bold cyan]Partidas:[/] [white]{game_count}[/]  •  "
        f"[bold yellow]Blunders:[/] [white]{blunders_found}[/]  •  "
        f"[bold green]Puzzles:[/] [white]{puzzles_found}[/]  •  "
        f"[bold red]Rejeitados:[/] [white]{puzzles_rejected}[/]"
    )
    if games_failed:
        text += f"\n[bold red]Partidas com falha (serão refeitas com --resume):[/] [white]{games_failed}[/]"
    console.print(Panel(
        text,
        title="[bold cyan]Estatísticas da Análise[/]",
        border_style="cyan",
        padding=(1, 2),
        width=80,
        title_align="center",
    ))


def print_performance_stats(total_time, average_time_per_game, game_count, puzzles_found):
    h, m = divmod(total_time / 60, 60)
    s = total_time % 60
    time_formatted = f"{int(h):02d}h {int(m):02d}m {int(s):02d}s"
    perf_table = Table(box=None, show_header=False, width=76)
    perf_table.add_column("Métrica", style="bold cyan", justify="right", width=40)
    perf_table.add_column("Valor", style="white", justify="left")
    perf_table.add_row("Tempo total de análise:", time_formatted)
    perf_table.add_row("Tempo médio por partida:", f"{average_time_per_game:.2f}s")
    if game_count > 0:
        perf_table.add_row("Taxa de extração:", f"{puzzles_found / game_count * 100:.1f}% (puzzles/partidas)")
    console.print(Panel(
        perf_table,
        title="[bold blue]Desempenho da Análise[/]",
        border_style="blue",
        padding=(1, 1),
        width=80,
        title_align="center",
    ))


# Cores dos motivos de rejeição mais comuns
_REASON_STYLES = {
    "efeito horizonte": "cyan",
    "lado já estava ganho": "green",
    "vantagem não decisiva": "yellow",
    "múltiplas soluções": "magenta",
    "alternativas demais": "blue",
}


def print_rejection_reasons(rejection_reasons, puzzles_rejected):
    reasons_table = Table(box=None, show_header=True, width=76)
    reasons_table.add_column("Motivo", style="bold", justify="left")
    reasons_table.add_column("Quantidade", justify="center")
    reasons_table.add_column("Porcentagem", justify="right")
    for reason, count in sorted(rejection_reasons.items(), key=lambda x: x[1], reverse=True):
        if count <= 0:
            continue
        row_style = next((style for key, style in _REASON_STYLES.items() if key in reason.lower()), "white")
        reasons_table.add_row(reason.capitalize(), str(count), f"{count / puzzles_rejected * 100:.1f}%", style=row_style)
    console.print(Panel(
        reasons_table,
        title="[bold red]Motivos de Rejeição[/]",
        border_style="red",
        padding=(1, 1),
        width=80,
        title_align="center",
    ))


_RESULT_LABELS = {"mate": ("Mate", "red"), "material": ("Ganho de material", "green"), "draw": ("Empate", "yellow")}


def print_puzzle_results(result_stats, puzzles_found):
    table = Table(box=None, show_header=True, width=76)
    table.add_column("Resultado", style="bold", justify="left")
    table.add_column("Quantidade", justify="center")
    table.add_column("Porcentagem", justify="right")
    for result, count in sorted(result_stats.items(), key=lambda x: x[1], reverse=True):
        label, style = _RESULT_LABELS.get(result, (result, "white"))
        table.add_row(label, str(count), f"{count / puzzles_found * 100:.1f}%", style=style)
    console.print(Panel(
        table,
        title="[bold green]Puzzles Encontrados por Resultado[/]",
        border_style="green",
        padding=(1, 1),
        width=80,
        title_align="center",
    ))


def print_output_file_info(output_path):
    console.print(f"\n[bold blue]Puzzles salvos em:[/] [magenta]{output_path}[/]")


# Resumo da reverificação de um arquivo de puzzles
def print_verification_summary(checked, ambiguous, invalid, failed, report_path):
    text = (
        f"[bold cyan]Verificados:[/] [white]{checked}[/]  •  "
        f"[bold magenta]Com outras soluções:[/] [white]{ambiguous}[/]  •  "
        f"[bold red]Inválidos:[/] [white]{invalid}[/]"
    )
    if failed:
        text += f"\n[bold red]Puzzles com falha no motor:[/] [white]{failed}[/]"
    console.print(Panel(
        text,
        title="[bold cyan]Reverificação dos Puzzles[/]",
        border_style="cyan",
        padding=(1, 2),
        width=80,
        title_align="center",
    ))
    console.print(f"\n[bold blue]Relatório salvo em:[/] [magenta]{report_path}[/]")
